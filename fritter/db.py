"""
Document store abstraction for users, freets and upvotes.

Two implementations share the DbClient protocol: an in-memory store for
development and tests, and a SQLAlchemy-backed store that accepts any
SQLAlchemy URL (Postgres in production, SQLite for tests).
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Optional, Protocol

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    Float,
    String,
    UniqueConstraint,
    create_engine,
    func,
    select,
)
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, declarative_base, sessionmaker


class DuplicateUpvoteError(Exception):
    """Raised when an (author, freet) pair already has a live upvote."""

    def __init__(self, author_id: str, freet_id: str):
        super().__init__(f"User {author_id} has already upvoted freet {freet_id}")
        self.author_id = author_id
        self.freet_id = freet_id


class DuplicateUsernameError(Exception):
    """Raised when a username is already held by another account."""

    def __init__(self, username: str):
        super().__init__(f"Username {username} is already taken")
        self.username = username


@dataclass
class UserRecord:
    user_id: str
    username: str
    password: str
    birthday: date
    underage: bool
    upvoted_freets: list[str] = field(default_factory=list)
    date_joined: float = field(default_factory=lambda: time.time())


@dataclass
class FreetRecord:
    freet_id: str
    author_id: str
    content: str
    flags: list[str] = field(default_factory=list)
    self_flagged: bool = False
    date_created: float = field(default_factory=lambda: time.time())
    date_modified: float = field(default_factory=lambda: time.time())


@dataclass
class UpvoteRecord:
    upvote_id: str
    author_id: str
    freet_id: str
    date_created: float = field(default_factory=lambda: time.time())


class DbClient(Protocol):
    """Interface for database access."""

    def create_user(
        self, username: str, password: str, birthday: date, underage: bool
    ) -> UserRecord:
        ...

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        ...

    def find_user_by_username(self, username: str) -> Optional[UserRecord]:
        ...

    def update_user(
        self,
        user_id: str,
        *,
        username: Optional[str] = None,
        password: Optional[str] = None,
    ) -> Optional[UserRecord]:
        ...

    def add_upvoted_freet(self, user_id: str, freet_id: str) -> None:
        ...

    def remove_upvoted_freet(self, user_id: str, freet_id: str) -> None:
        ...

    def clear_upvoted_freets(self, user_id: str) -> None:
        ...

    def delete_user(self, user_id: str) -> bool:
        ...

    def create_freet(
        self, author_id: str, content: str, flags: list[str]
    ) -> FreetRecord:
        ...

    def get_freet(self, freet_id: str) -> Optional[FreetRecord]:
        ...

    def list_freets(
        self, *, author_id: Optional[str] = None, unflagged_only: bool = False
    ) -> list[FreetRecord]:
        ...

    def delete_freet(self, freet_id: str) -> bool:
        ...

    def create_upvote(self, author_id: str, freet_id: str) -> UpvoteRecord:
        ...

    def get_upvote(self, upvote_id: str) -> Optional[UpvoteRecord]:
        ...

    def list_upvotes(
        self, *, author_id: Optional[str] = None, freet_id: Optional[str] = None
    ) -> list[UpvoteRecord]:
        ...

    def delete_upvote(self, upvote_id: str) -> bool:
        ...

    def delete_upvotes(
        self, *, author_id: Optional[str] = None, freet_id: Optional[str] = None
    ) -> list[UpvoteRecord]:
        ...


def _normalize_username(username: str) -> str:
    return username.strip().lower()


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.users: Dict[str, UserRecord] = {}
        self.freets: Dict[str, FreetRecord] = {}
        self.upvotes: Dict[str, UpvoteRecord] = {}

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.users.clear()
        self.freets.clear()
        self.upvotes.clear()

    # Users

    def create_user(
        self, username: str, password: str, birthday: date, underage: bool
    ) -> UserRecord:
        if self.find_user_by_username(username):
            raise DuplicateUsernameError(username)
        record = UserRecord(
            user_id=uuid.uuid4().hex,
            username=username,
            password=password,
            birthday=birthday,
            underage=underage,
        )
        self.users[record.user_id] = record
        return record

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        return self.users.get(user_id)

    def find_user_by_username(self, username: str) -> Optional[UserRecord]:
        wanted = _normalize_username(username)
        for user in self.users.values():
            if user.username.lower() == wanted:
                return user
        return None

    def update_user(
        self,
        user_id: str,
        *,
        username: Optional[str] = None,
        password: Optional[str] = None,
    ) -> Optional[UserRecord]:
        user = self.users.get(user_id)
        if not user:
            return None
        if username:
            holder = self.find_user_by_username(username)
            if holder and holder.user_id != user_id:
                raise DuplicateUsernameError(username)
            user.username = username
        if password:
            user.password = password
        return user

    def add_upvoted_freet(self, user_id: str, freet_id: str) -> None:
        user = self.users.get(user_id)
        if user and freet_id not in user.upvoted_freets:
            user.upvoted_freets.append(freet_id)

    def remove_upvoted_freet(self, user_id: str, freet_id: str) -> None:
        user = self.users.get(user_id)
        if user and freet_id in user.upvoted_freets:
            user.upvoted_freets.remove(freet_id)

    def clear_upvoted_freets(self, user_id: str) -> None:
        user = self.users.get(user_id)
        if user:
            user.upvoted_freets = []

    def delete_user(self, user_id: str) -> bool:
        return self.users.pop(user_id, None) is not None

    # Freets

    def create_freet(
        self, author_id: str, content: str, flags: list[str]
    ) -> FreetRecord:
        now = time.time()
        record = FreetRecord(
            freet_id=uuid.uuid4().hex,
            author_id=author_id,
            content=content,
            flags=list(flags),
            self_flagged=bool(flags),
            date_created=now,
            date_modified=now,
        )
        self.freets[record.freet_id] = record
        return record

    def get_freet(self, freet_id: str) -> Optional[FreetRecord]:
        return self.freets.get(freet_id)

    def list_freets(
        self, *, author_id: Optional[str] = None, unflagged_only: bool = False
    ) -> list[FreetRecord]:
        items = [
            freet
            for freet in self.freets.values()
            if (author_id is None or freet.author_id == author_id)
            and not (unflagged_only and freet.self_flagged)
        ]
        return sorted(items, key=lambda f: f.date_modified, reverse=True)

    def delete_freet(self, freet_id: str) -> bool:
        return self.freets.pop(freet_id, None) is not None

    # Upvotes

    def create_upvote(self, author_id: str, freet_id: str) -> UpvoteRecord:
        for upvote in self.upvotes.values():
            if upvote.author_id == author_id and upvote.freet_id == freet_id:
                raise DuplicateUpvoteError(author_id, freet_id)
        record = UpvoteRecord(
            upvote_id=uuid.uuid4().hex, author_id=author_id, freet_id=freet_id
        )
        self.upvotes[record.upvote_id] = record
        return record

    def get_upvote(self, upvote_id: str) -> Optional[UpvoteRecord]:
        return self.upvotes.get(upvote_id)

    def list_upvotes(
        self, *, author_id: Optional[str] = None, freet_id: Optional[str] = None
    ) -> list[UpvoteRecord]:
        items = [
            upvote
            for upvote in self.upvotes.values()
            if (author_id is None or upvote.author_id == author_id)
            and (freet_id is None or upvote.freet_id == freet_id)
        ]
        return sorted(items, key=lambda u: u.date_created, reverse=True)

    def delete_upvote(self, upvote_id: str) -> bool:
        return self.upvotes.pop(upvote_id, None) is not None

    def delete_upvotes(
        self, *, author_id: Optional[str] = None, freet_id: Optional[str] = None
    ) -> list[UpvoteRecord]:
        removed = self.list_upvotes(author_id=author_id, freet_id=freet_id)
        for upvote in removed:
            del self.upvotes[upvote.upvote_id]
        return removed


class SqlDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlDbClient")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def _to_user_record(self, row: "UserRow") -> UserRecord:
        return UserRecord(
            user_id=row.user_id,
            username=row.username,
            password=row.password,
            birthday=row.birthday,
            underage=row.underage,
            upvoted_freets=list(row.upvoted_freets or []),
            date_joined=row.date_joined,
        )

    def _to_freet_record(self, row: "FreetRow") -> FreetRecord:
        return FreetRecord(
            freet_id=row.freet_id,
            author_id=row.author_id,
            content=row.content,
            flags=list(row.flags or []),
            self_flagged=row.self_flagged,
            date_created=row.date_created,
            date_modified=row.date_modified,
        )

    def _to_upvote_record(self, row: "UpvoteRow") -> UpvoteRecord:
        return UpvoteRecord(
            upvote_id=row.upvote_id,
            author_id=row.author_id,
            freet_id=row.freet_id,
            date_created=row.date_created,
        )

    # Users

    def create_user(
        self, username: str, password: str, birthday: date, underage: bool
    ) -> UserRecord:
        with self.Session() as session:
            row = UserRow(
                user_id=uuid.uuid4().hex,
                username=username,
                password=password,
                birthday=birthday,
                underage=underage,
                upvoted_freets=[],
                date_joined=time.time(),
            )
            session.add(row)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise DuplicateUsernameError(username) from exc
            session.refresh(row)
            return self._to_user_record(row)

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        with self.Session() as session:
            row = session.get(UserRow, user_id)
            return self._to_user_record(row) if row else None

    def find_user_by_username(self, username: str) -> Optional[UserRecord]:
        with self.Session() as session:
            stmt = select(UserRow).where(
                func.lower(UserRow.username) == _normalize_username(username)
            )
            row = session.execute(stmt).scalars().first()
            return self._to_user_record(row) if row else None

    def update_user(
        self,
        user_id: str,
        *,
        username: Optional[str] = None,
        password: Optional[str] = None,
    ) -> Optional[UserRecord]:
        with self.Session() as session:
            row = session.get(UserRow, user_id)
            if not row:
                return None
            if username:
                row.username = username
            if password:
                row.password = password
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise DuplicateUsernameError(username) from exc
            session.refresh(row)
            return self._to_user_record(row)

    def add_upvoted_freet(self, user_id: str, freet_id: str) -> None:
        with self.Session() as session:
            row = session.get(UserRow, user_id)
            if not row:
                return
            current = list(row.upvoted_freets or [])
            if freet_id not in current:
                # JSON columns are not mutation-tracked; assign a new list.
                row.upvoted_freets = current + [freet_id]
                session.commit()

    def remove_upvoted_freet(self, user_id: str, freet_id: str) -> None:
        with self.Session() as session:
            row = session.get(UserRow, user_id)
            if not row:
                return
            current = list(row.upvoted_freets or [])
            if freet_id in current:
                current.remove(freet_id)
                row.upvoted_freets = current
                session.commit()

    def clear_upvoted_freets(self, user_id: str) -> None:
        with self.Session() as session:
            row = session.get(UserRow, user_id)
            if not row:
                return
            row.upvoted_freets = []
            session.commit()

    def delete_user(self, user_id: str) -> bool:
        with self.Session() as session:
            row = session.get(UserRow, user_id)
            if not row:
                return False
            session.delete(row)
            session.commit()
            return True

    # Freets

    def create_freet(
        self, author_id: str, content: str, flags: list[str]
    ) -> FreetRecord:
        now = time.time()
        with self.Session() as session:
            row = FreetRow(
                freet_id=uuid.uuid4().hex,
                author_id=author_id,
                content=content,
                flags=list(flags),
                self_flagged=bool(flags),
                date_created=now,
                date_modified=now,
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_freet_record(row)

    def get_freet(self, freet_id: str) -> Optional[FreetRecord]:
        with self.Session() as session:
            row = session.get(FreetRow, freet_id)
            return self._to_freet_record(row) if row else None

    def list_freets(
        self, *, author_id: Optional[str] = None, unflagged_only: bool = False
    ) -> list[FreetRecord]:
        with self.Session() as session:
            stmt = select(FreetRow)
            if author_id is not None:
                stmt = stmt.where(FreetRow.author_id == author_id)
            if unflagged_only:
                stmt = stmt.where(FreetRow.self_flagged.is_(False))
            stmt = stmt.order_by(FreetRow.date_modified.desc())
            return [self._to_freet_record(row) for row in session.execute(stmt).scalars()]

    def delete_freet(self, freet_id: str) -> bool:
        with self.Session() as session:
            row = session.get(FreetRow, freet_id)
            if not row:
                return False
            session.delete(row)
            session.commit()
            return True

    # Upvotes

    def create_upvote(self, author_id: str, freet_id: str) -> UpvoteRecord:
        with self.Session() as session:
            row = UpvoteRow(
                upvote_id=uuid.uuid4().hex,
                author_id=author_id,
                freet_id=freet_id,
                date_created=time.time(),
            )
            session.add(row)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise DuplicateUpvoteError(author_id, freet_id) from exc
            session.refresh(row)
            return self._to_upvote_record(row)

    def get_upvote(self, upvote_id: str) -> Optional[UpvoteRecord]:
        with self.Session() as session:
            row = session.get(UpvoteRow, upvote_id)
            return self._to_upvote_record(row) if row else None

    def _upvote_query(
        self, author_id: Optional[str], freet_id: Optional[str]
    ):
        stmt = select(UpvoteRow)
        if author_id is not None:
            stmt = stmt.where(UpvoteRow.author_id == author_id)
        if freet_id is not None:
            stmt = stmt.where(UpvoteRow.freet_id == freet_id)
        return stmt.order_by(UpvoteRow.date_created.desc())

    def list_upvotes(
        self, *, author_id: Optional[str] = None, freet_id: Optional[str] = None
    ) -> list[UpvoteRecord]:
        with self.Session() as session:
            rows = session.execute(self._upvote_query(author_id, freet_id)).scalars()
            return [self._to_upvote_record(row) for row in rows]

    def delete_upvote(self, upvote_id: str) -> bool:
        with self.Session() as session:
            row = session.get(UpvoteRow, upvote_id)
            if not row:
                return False
            session.delete(row)
            session.commit()
            return True

    def delete_upvotes(
        self, *, author_id: Optional[str] = None, freet_id: Optional[str] = None
    ) -> list[UpvoteRecord]:
        with self.Session() as session:
            rows = session.execute(self._upvote_query(author_id, freet_id)).scalars().all()
            removed = [self._to_upvote_record(row) for row in rows]
            for row in rows:
                session.delete(row)
            session.commit()
            return removed


Base = declarative_base()


class UserRow(Base):
    __tablename__ = "users"

    user_id = Column(String, primary_key=True)
    username = Column(String, nullable=False, unique=True, index=True)
    password = Column(String, nullable=False)
    birthday = Column(Date, nullable=False)
    underage = Column(Boolean, nullable=False)
    upvoted_freets = Column(JSON, nullable=False, default=list)
    date_joined = Column(Float, nullable=False)


class FreetRow(Base):
    __tablename__ = "freets"

    freet_id = Column(String, primary_key=True)
    author_id = Column(String, nullable=False, index=True)
    content = Column(String, nullable=False)
    flags = Column(JSON, nullable=False, default=list)
    self_flagged = Column(Boolean, nullable=False, default=False, index=True)
    date_created = Column(Float, nullable=False)
    date_modified = Column(Float, nullable=False)


class UpvoteRow(Base):
    __tablename__ = "upvotes"
    __table_args__ = (
        UniqueConstraint("author_id", "freet_id", name="uq_upvote_author_freet"),
    )

    upvote_id = Column(String, primary_key=True)
    author_id = Column(String, nullable=False, index=True)
    freet_id = Column(String, nullable=False, index=True)
    date_created = Column(Float, nullable=False)
