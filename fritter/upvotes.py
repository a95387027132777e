"""
Upvote operations. Each upvote is mirrored in its author's upvoted list;
both writes happen here so the two stay in step.
"""

from __future__ import annotations

import logging
from typing import Optional

from fritter.db import DbClient, UpvoteRecord, UserRecord

logger = logging.getLogger(__name__)


def add_upvote(db: DbClient, author: UserRecord, freet_id: str) -> UpvoteRecord:
    # The record goes in first: the store rejects a duplicate (author, freet)
    # pair, so a racing request fails before touching the upvoted list.
    upvote = db.create_upvote(author.user_id, freet_id)
    db.add_upvoted_freet(author.user_id, freet_id)
    logger.info("User %s upvoted freet %s", author.user_id, freet_id)
    return upvote


def remove_upvote(db: DbClient, upvote: UpvoteRecord) -> None:
    db.remove_upvoted_freet(upvote.author_id, upvote.freet_id)
    db.delete_upvote(upvote.upvote_id)
    logger.info("Removed upvote %s", upvote.upvote_id)


def list_upvotes(
    db: DbClient,
    *,
    author_username: Optional[str] = None,
    freet_id: Optional[str] = None,
) -> list[UpvoteRecord]:
    author_id = None
    if author_username is not None:
        author = db.find_user_by_username(author_username)
        if author is None:
            return []
        author_id = author.user_id
    return db.list_upvotes(author_id=author_id, freet_id=freet_id)


def delete_upvotes_by_author(db: DbClient, user_id: str) -> int:
    db.clear_upvoted_freets(user_id)
    removed = db.delete_upvotes(author_id=user_id)
    logger.info("Deleted %d upvote(s) by user %s", len(removed), user_id)
    return len(removed)
