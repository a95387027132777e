"""
Shape stored records into the JSON the client renders.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional, Union

from fritter.db import DbClient, FreetRecord, UpvoteRecord, UserRecord

DELETED_USER = "[deleted]"


def _ordinal(day: int) -> str:
    if 11 <= day % 100 <= 13:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")
    return f"{day}{suffix}"


def format_date(value: Union[float, datetime]) -> str:
    """
    Render a timestamp as e.g. "October 19th 2026, 3:04:05 pm".

    Float timestamps are interpreted as UTC epoch seconds.
    """
    if not isinstance(value, datetime):
        value = datetime.fromtimestamp(value, tz=timezone.utc)
    hour = value.hour % 12 or 12
    meridiem = "am" if value.hour < 12 else "pm"
    return (
        f"{value:%B} {_ordinal(value.day)} {value.year}, "
        f"{hour}:{value:%M}:{value:%S} {meridiem}"
    )


def format_birthday(value: date) -> str:
    return f"{value:%B} {_ordinal(value.day)} {value.year}"


def _username(db: DbClient, user_id: str) -> str:
    author = db.get_user(user_id)
    return author.username if author else DELETED_USER


def user_response(user: Optional[UserRecord]) -> Optional[dict]:
    if user is None:
        return None
    return {
        "_id": str(user.user_id),
        "username": user.username,
        "dateJoined": format_date(user.date_joined),
        "birthday": format_birthday(user.birthday),
        "underage": user.underage,
        "upvotedFreets": [str(freet_id) for freet_id in user.upvoted_freets],
    }


def freet_response(db: DbClient, freet: FreetRecord) -> dict:
    # List views show full content whatever the flag.
    return {
        "_id": str(freet.freet_id),
        "author": _username(db, freet.author_id),
        "content": freet.content,
        "dateCreated": format_date(freet.date_created),
        "dateModified": format_date(freet.date_modified),
        "selfFlagged": freet.self_flagged,
    }


def raw_freet_response(db: DbClient, freet: FreetRecord) -> dict:
    """Single-freet shape, including the author's flag reasons."""
    response = freet_response(db, freet)
    response["flags"] = list(freet.flags)
    return response


def upvote_response(db: DbClient, upvote: UpvoteRecord) -> dict:
    return {
        "_id": str(upvote.upvote_id),
        "freetId": str(upvote.freet_id),
        "author": _username(db, upvote.author_id),
        "dateCreated": format_date(upvote.date_created),
    }
