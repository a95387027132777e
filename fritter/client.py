"""
REST client for the Fritter API.

Wraps the same calls the browser UI makes. The session cookie lives on the
underlying HTTP session, so sign-in state carries across calls.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import requests

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:8000"


class FreetsApiError(Exception):
    """Non-2xx response from the API, carrying its {error} message."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


class FreetsClient:
    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        api_prefix: str = "/api",
        session: Optional[Any] = None,
    ):
        # Any requests-compatible session works, including FastAPI's TestClient.
        self.base_url = base_url.rstrip("/")
        self.api_prefix = api_prefix
        self.session = session if session is not None else requests.Session()

    def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.base_url}{self.api_prefix}{path}"
        logger.debug("%s %s", method, url)
        response = self.session.request(method, url, **kwargs)
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if response.status_code >= 400:
            message = payload.get("error") if isinstance(payload, dict) else None
            raise FreetsApiError(response.status_code, str(message or response.text))
        return payload

    # Users

    def sign_up(self, username: str, password: str, birthday: str) -> dict:
        body = {"username": username, "password": password, "birthday": birthday}
        return self._request("POST", "/users", json=body)["user"]

    def sign_in(self, username: str, password: str) -> dict:
        body = {"username": username, "password": password}
        return self._request("POST", "/users/session", json=body)["user"]

    def sign_out(self) -> str:
        return self._request("DELETE", "/users/session")["message"]

    def whoami(self) -> Optional[dict]:
        return self._request("GET", "/users/session")["user"]

    def update_profile(
        self, username: Optional[str] = None, password: Optional[str] = None
    ) -> dict:
        body = {}
        if username:
            body["username"] = username
        if password:
            body["password"] = password
        return self._request("PATCH", "/users", json=body)["user"]

    def delete_account(self) -> str:
        return self._request("DELETE", "/users")["message"]

    # Freets

    def list_freets(self, author: Optional[str] = None) -> list[dict]:
        params = {"author": author} if author is not None else None
        return self._request("GET", "/freets", params=params)

    def get_freet(self, freet_id: str) -> dict:
        return self._request("GET", f"/freets/{freet_id}")["freet"]

    def post_freet(self, content: str, flags: Optional[dict[str, str]] = None) -> dict:
        body = dict(flags or {})
        body["content"] = content
        return self._request("POST", "/freets", json=body)["freet"]

    def delete_freet(self, freet_id: str) -> str:
        return self._request("DELETE", f"/freets/{freet_id}")["message"]

    # Upvotes

    def list_upvotes(
        self, author: Optional[str] = None, freet_id: Optional[str] = None
    ) -> list[dict]:
        params = {}
        if author is not None:
            params["author"] = author
        if freet_id is not None:
            params["freetId"] = freet_id
        return self._request("GET", "/upvotes", params=params or None)

    def upvote(self, freet_id: str) -> dict:
        return self._request("POST", f"/upvotes/{freet_id}")["upvote"]

    def remove_upvote(self, upvote_id: str) -> str:
        return self._request("DELETE", f"/upvotes/{upvote_id}")["message"]
