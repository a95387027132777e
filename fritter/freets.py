"""
Freet operations and the list visibility rule.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fritter.db import DbClient, FreetRecord, UserRecord

logger = logging.getLogger(__name__)


def collect_flags(body: dict[str, Any]) -> list[str]:
    """Every body field except content is a flag reason, in body order."""
    flags = []
    for key, value in body.items():
        # An unchecked flag box arrives as false.
        if key == "content" or value is None or value is False:
            continue
        reason = value if isinstance(value, str) else str(value)
        if reason.strip():
            flags.append(reason.strip())
    return flags


def create_freet(
    db: DbClient, author: UserRecord, content: str, flags: list[str]
) -> FreetRecord:
    freet = db.create_freet(author.user_id, content, flags)
    logger.info(
        "User %s created freet %s (flags=%d)",
        author.user_id,
        freet.freet_id,
        len(flags),
    )
    return freet


def list_visible_freets(
    db: DbClient, viewer: Optional[UserRecord]
) -> list[FreetRecord]:
    """
    All freets, newest first. Underage viewers never see self-flagged ones.
    """
    unflagged_only = viewer is not None and viewer.underage
    return db.list_freets(unflagged_only=unflagged_only)


def list_freets_by_author(db: DbClient, username: str) -> list[FreetRecord]:
    author = db.find_user_by_username(username)
    if author is None:
        return []
    return db.list_freets(author_id=author.user_id)


def delete_freet(db: DbClient, freet_id: str) -> None:
    """
    Remove a freet, then every upvote it received, scrubbing the freet id
    from each upvoter's list. Not transactional.
    """
    db.delete_freet(freet_id)
    removed = db.delete_upvotes(freet_id=freet_id)
    for upvote in removed:
        db.remove_upvoted_freet(upvote.author_id, freet_id)
    logger.info("Deleted freet %s and %d upvote(s)", freet_id, len(removed))
