"""
Request guards that run before route handlers.

A guard takes a GuardContext and returns None to let the request through,
or a GuardError describing why it was rejected. Routes declare an ordered
list of guards and hand it to run_guards, which stops at the first failure.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Optional, Sequence

from fastapi import HTTPException

from fritter.config import get_settings
from fritter.db import DbClient, UserRecord
from fritter.users import calculate_age

logger = logging.getLogger(__name__)

USERNAME_PATTERN = re.compile(r"^\w+$")
PASSWORD_PATTERN = re.compile(r"^\S+$")


@dataclass(frozen=True)
class GuardError:
    status_code: int
    message: str


@dataclass
class GuardContext:
    db: DbClient
    viewer: Optional[UserRecord]
    params: dict[str, Any] = field(default_factory=dict)


Guard = Callable[[GuardContext], Optional[GuardError]]


def run_guards(guards: Sequence[Guard], ctx: GuardContext) -> None:
    for guard in guards:
        error = guard(ctx)
        if error is not None:
            logger.warning(
                "%s rejected request (%d): %s",
                guard.__name__,
                error.status_code,
                error.message,
            )
            raise HTTPException(status_code=error.status_code, detail=error.message)


# Sessions


def is_user_logged_in(ctx: GuardContext) -> Optional[GuardError]:
    if ctx.viewer is None:
        return GuardError(403, "You must be logged in to complete this action.")
    return None


def is_user_logged_out(ctx: GuardContext) -> Optional[GuardError]:
    if ctx.viewer is not None:
        return GuardError(403, "You are already signed in.")
    return None


def is_user_adult(ctx: GuardContext) -> Optional[GuardError]:
    if ctx.viewer is not None and ctx.viewer.underage:
        return GuardError(403, "Underage users cannot view flagged freets.")
    return None


# Users


def require_fields(*names: str) -> Guard:
    def has_required_fields(ctx: GuardContext) -> Optional[GuardError]:
        missing = [name for name in names if not ctx.params.get(name)]
        if missing:
            return GuardError(400, f"Missing required field(s): {', '.join(missing)}.")
        return None

    return has_required_fields


def is_valid_username(ctx: GuardContext) -> Optional[GuardError]:
    username = ctx.params.get("username")
    if username is None:
        return None
    if not isinstance(username, str) or not USERNAME_PATTERN.match(username):
        return GuardError(
            400,
            "Username must be a nonempty alphanumeric string.",
        )
    return None


def is_valid_password(ctx: GuardContext) -> Optional[GuardError]:
    password = ctx.params.get("password")
    if password is None:
        return None
    if not isinstance(password, str) or not PASSWORD_PATTERN.match(password):
        return GuardError(400, "Password must be a nonempty string with no spaces.")
    return None


def is_username_not_taken(ctx: GuardContext) -> Optional[GuardError]:
    username = ctx.params.get("username")
    if not username:
        return None
    existing = ctx.db.find_user_by_username(username)
    if existing and (ctx.viewer is None or existing.user_id != ctx.viewer.user_id):
        return GuardError(409, "An account with this username already exists.")
    return None


def is_valid_birthday(ctx: GuardContext) -> Optional[GuardError]:
    raw = ctx.params.get("birthday")
    try:
        birthday = date.fromisoformat(raw)
    except (TypeError, ValueError):
        return GuardError(400, "Birthday must be a date in YYYY-MM-DD format.")
    if birthday > date.today():
        return GuardError(400, "Birthday cannot be in the future.")
    minimum_age = get_settings().minimum_age
    if calculate_age(birthday) < minimum_age:
        return GuardError(400, f"You must be at least {minimum_age} to join Fritter.")
    return None


def is_author_exists(ctx: GuardContext) -> Optional[GuardError]:
    author = ctx.params.get("author")
    if not author or not str(author).strip():
        return GuardError(400, "Provided author username must be nonempty.")
    if ctx.db.find_user_by_username(author) is None:
        return GuardError(404, f"A user with username {author} does not exist.")
    return None


# Freets


def is_freet_exists(ctx: GuardContext) -> Optional[GuardError]:
    freet_id = ctx.params.get("freetId")
    if not freet_id or ctx.db.get_freet(freet_id) is None:
        return GuardError(404, f"Freet with freet ID {freet_id} does not exist.")
    return None


def is_flagged_freet_viewable(ctx: GuardContext) -> Optional[GuardError]:
    freet = ctx.db.get_freet(ctx.params["freetId"])
    if not freet.self_flagged:
        return None
    return is_user_logged_in(ctx) or is_user_adult(ctx)


def is_valid_freet_content(ctx: GuardContext) -> Optional[GuardError]:
    content = ctx.params.get("content")
    if not isinstance(content, str) or not content.strip():
        return GuardError(400, "Freet content must be at least one character long.")
    limit = get_settings().max_freet_length
    if len(content.strip()) > limit:
        return GuardError(413, f"Freet content must be no more than {limit} characters.")
    return None


def is_valid_freet_modifier(ctx: GuardContext) -> Optional[GuardError]:
    freet = ctx.db.get_freet(ctx.params["freetId"])
    if ctx.viewer is None or freet.author_id != ctx.viewer.user_id:
        return GuardError(403, "Cannot modify other users' freets.")
    return None


# Upvotes


def is_upvote_exists(ctx: GuardContext) -> Optional[GuardError]:
    upvote_id = ctx.params.get("upvoteId")
    if not upvote_id or ctx.db.get_upvote(upvote_id) is None:
        return GuardError(404, f"Upvote with upvote ID {upvote_id} does not exist.")
    return None


def is_freet_not_upvoted(ctx: GuardContext) -> Optional[GuardError]:
    if ctx.params["freetId"] in ctx.viewer.upvoted_freets:
        return GuardError(409, "User has already upvoted this Freet.")
    return None


def is_valid_upvote_modifier(ctx: GuardContext) -> Optional[GuardError]:
    upvote = ctx.db.get_upvote(ctx.params["upvoteId"])
    if ctx.viewer is None or upvote.author_id != ctx.viewer.user_id:
        return GuardError(400, "Cannot modify other users' upvotes.")
    return None
