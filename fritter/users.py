"""
User operations: age-gated signup, credential lookup, profile updates and
account deletion with its cascades.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from fritter import freets, upvotes
from fritter.config import get_settings
from fritter.db import DbClient, UserRecord

logger = logging.getLogger(__name__)


def calculate_age(birthday: date, today: Optional[date] = None) -> int:
    today = today or date.today()
    age = today.year - birthday.year
    if (today.month, today.day) < (birthday.month, birthday.day):
        age -= 1
    return age


def create_user(
    db: DbClient, username: str, password: str, birthday: date
) -> UserRecord:
    # Underage is fixed at signup and never recomputed.
    underage = calculate_age(birthday) < get_settings().adult_age
    user = db.create_user(username, password, birthday, underage)
    logger.info("Created user %s (underage=%s)", user.user_id, underage)
    return user


def find_by_credentials(
    db: DbClient, username: str, password: str
) -> Optional[UserRecord]:
    user = db.find_user_by_username(username)
    if user is None or user.password != password:
        return None
    return user


def update_user(
    db: DbClient,
    user: UserRecord,
    *,
    username: Optional[str] = None,
    password: Optional[str] = None,
) -> UserRecord:
    updated = db.update_user(user.user_id, username=username, password=password)
    logger.info("Updated user %s", user.user_id)
    return updated


def delete_user(db: DbClient, user: UserRecord) -> None:
    """
    Delete a user together with everything they authored.

    Their freets go first (each cascading to the upvotes it received), then
    the upvotes they cast elsewhere, then the account itself.
    """
    for freet in db.list_freets(author_id=user.user_id):
        freets.delete_freet(db, freet.freet_id)
    upvotes.delete_upvotes_by_author(db, user.user_id)
    db.delete_user(user.user_id)
    logger.info("Deleted user %s", user.user_id)
