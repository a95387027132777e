"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request

from fritter.config import get_settings
from fritter.db import DbClient, InMemoryDbClient, SqlDbClient, UserRecord

SESSION_USER_KEY = "userId"

_db_client: DbClient | None = None


def get_db_client() -> DbClient:
    """
    Return a singleton DB client so state persists across requests.
    """
    global _db_client
    if _db_client:
        return _db_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.database_url:
        _db_client = InMemoryDbClient()
    else:
        _db_client = SqlDbClient(settings.database_url)
    return _db_client


def get_viewer(
    request: Request, db: DbClient = Depends(get_db_client)
) -> Optional[UserRecord]:
    """
    Resolve the session's user id to the signed-in user.

    Returns None when nobody is signed in, or when the session points at a
    user that has since been deleted.
    """
    user_id = request.session.get(SESSION_USER_KEY)
    if not user_id:
        return None
    return db.get_user(user_id)
