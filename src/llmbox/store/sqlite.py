"""SQLite-backed personalization store.

Accepts a sqlite3.Connection, uses parameterized queries exclusively, and
commits synchronously after each write.  A lock serializes access so the
store can be shared by request handlers and batch worker threads.
"""

from __future__ import annotations

import sqlite3
import threading
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any

import structlog

from llmbox.domain.errors import DuplicateSignupError, RecordNotFoundError, StoreError
from llmbox.domain.models import Customization, Newsletter, User
from llmbox.domain.types import CustomizationType

logger = structlog.get_logger()


def _now() -> str:
    return datetime.now(tz=UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def _new_id() -> str:
    return str(uuid.uuid4())


def _user_from_row(row: sqlite3.Row) -> User:
    return User(
        id=row["id"],
        email=row["email"],
        prompt=row["prompt"],
        is_active=bool(row["is_active"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _customization_from_row(row: sqlite3.Row) -> Customization:
    return Customization(
        id=row["id"],
        user_id=row["user_id"],
        type=CustomizationType(row["type"]),
        content=row["content"],
        created_at=row["created_at"],
    )


def _newsletter_from_row(row: sqlite3.Row) -> Newsletter:
    return Newsletter(
        id=row["id"],
        user_id=row["user_id"],
        content=row["content"],
        sent_at=row["sent_at"],
    )


class SQLitePersonalizationStore:
    """Persist users, customizations and newsletters in SQLite.

    Args:
        conn: An open sqlite3.Connection whose database already has the
              personalization tables (see ``init_personalization_tables``).
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._lock = threading.Lock()

    @contextmanager
    def _cursor(self, operation: str) -> Iterator[sqlite3.Cursor]:
        """Yield a dict-row cursor under the store lock, wrapping driver errors."""
        with self._lock:
            cursor = self._conn.cursor()
            cursor.row_factory = sqlite3.Row
            try:
                yield cursor
                self._conn.commit()
            except sqlite3.IntegrityError:
                self._conn.rollback()
                raise
            except sqlite3.Error as exc:
                self._conn.rollback()
                logger.error("store_operation_failed", operation=operation, error=str(exc))
                raise StoreError(f"{operation} failed", {"error": str(exc)}) from exc
            except Exception:
                self._conn.rollback()
                raise
            finally:
                cursor.close()

    def _fetch_one(self, cursor: sqlite3.Cursor, table: str, key: str) -> sqlite3.Row:
        row: Any = cursor.fetchone()
        if row is None:
            raise RecordNotFoundError(table, key)
        return row

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def create_user(self, email: str, prompt: str) -> User:
        """Insert a new active user.

        Raises:
            DuplicateSignupError: If *email* is already registered.
        """
        user_id = _new_id()
        now = _now()
        try:
            with self._cursor("create_user") as cur:
                cur.execute(
                    """
                    INSERT INTO users (id, email, prompt, is_active, created_at, updated_at)
                    VALUES (?, ?, ?, 1, ?, ?)
                    """,
                    (user_id, email, prompt, now, now),
                )
        except sqlite3.IntegrityError as exc:
            if "users.email" in str(exc):
                raise DuplicateSignupError(email) from exc
            raise StoreError("create_user failed", {"error": str(exc)}) from exc

        logger.info("user_created", user_id=user_id)
        return User(
            id=user_id, email=email, prompt=prompt, is_active=True, created_at=now, updated_at=now
        )

    def get_user(self, user_id: str) -> User:
        with self._cursor("get_user") as cur:
            cur.execute("SELECT * FROM users WHERE id = ?", (user_id,))
            return _user_from_row(self._fetch_one(cur, "users", user_id))

    def get_user_by_email(self, email: str) -> User:
        with self._cursor("get_user_by_email") as cur:
            cur.execute("SELECT * FROM users WHERE email = ?", (email,))
            return _user_from_row(self._fetch_one(cur, "users", email))

    def _update_user(self, operation: str, user_id: str, column: str, value: Any) -> User:
        with self._cursor(operation) as cur:
            cur.execute(
                f"UPDATE users SET {column} = ?, updated_at = ? WHERE id = ?",  # noqa: S608
                (value, _now(), user_id),
            )
            if cur.rowcount == 0:
                raise RecordNotFoundError("users", user_id)
            cur.execute("SELECT * FROM users WHERE id = ?", (user_id,))
            return _user_from_row(self._fetch_one(cur, "users", user_id))

    def update_user_prompt(self, user_id: str, prompt: str) -> User:
        return self._update_user("update_user_prompt", user_id, "prompt", prompt)

    def set_user_active(self, user_id: str, is_active: bool) -> User:
        return self._update_user("set_user_active", user_id, "is_active", int(is_active))

    def delete_user(self, user_id: str) -> None:
        """Delete a user and their dependent rows (administrative use only)."""
        with self._cursor("delete_user") as cur:
            cur.execute("DELETE FROM customizations WHERE user_id = ?", (user_id,))
            cur.execute("DELETE FROM newsletters WHERE user_id = ?", (user_id,))
            cur.execute("DELETE FROM users WHERE id = ?", (user_id,))
            if cur.rowcount == 0:
                raise RecordNotFoundError("users", user_id)

    def list_active_users(self) -> list[User]:
        with self._cursor("list_active_users") as cur:
            cur.execute("SELECT * FROM users WHERE is_active = 1 ORDER BY created_at, rowid")
            return [_user_from_row(row) for row in cur.fetchall()]

    # ------------------------------------------------------------------
    # Customizations
    # ------------------------------------------------------------------

    def append_customization(
        self,
        user_id: str,
        content: str,
        customization_type: CustomizationType = CustomizationType.REPLY,
    ) -> Customization:
        """Append one customization row for an existing user.

        Raises:
            RecordNotFoundError: If *user_id* does not exist.
        """
        customization_id = _new_id()
        now = _now()
        try:
            with self._cursor("append_customization") as cur:
                cur.execute(
                    """
                    INSERT INTO customizations (id, user_id, type, content, created_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (customization_id, user_id, customization_type.value, content, now),
                )
        except sqlite3.IntegrityError as exc:
            raise RecordNotFoundError("users", user_id) from exc

        logger.info(
            "customization_added",
            customization_id=customization_id,
            user_id=user_id,
            content_length=len(content),
        )
        return Customization(
            id=customization_id,
            user_id=user_id,
            type=customization_type,
            content=content,
            created_at=now,
        )

    def list_customizations(self, user_id: str) -> list[Customization]:
        with self._cursor("list_customizations") as cur:
            cur.execute(
                "SELECT * FROM customizations WHERE user_id = ? ORDER BY created_at, rowid",
                (user_id,),
            )
            return [_customization_from_row(row) for row in cur.fetchall()]

    # ------------------------------------------------------------------
    # Newsletters
    # ------------------------------------------------------------------

    def create_newsletter(self, user_id: str, content: str) -> Newsletter:
        newsletter_id = _new_id()
        now = _now()
        try:
            with self._cursor("create_newsletter") as cur:
                cur.execute(
                    "INSERT INTO newsletters (id, user_id, content, sent_at) VALUES (?, ?, ?, ?)",
                    (newsletter_id, user_id, content, now),
                )
        except sqlite3.IntegrityError as exc:
            raise RecordNotFoundError("users", user_id) from exc
        return Newsletter(id=newsletter_id, user_id=user_id, content=content, sent_at=now)

    def get_newsletter(self, newsletter_id: str) -> Newsletter:
        with self._cursor("get_newsletter") as cur:
            cur.execute("SELECT * FROM newsletters WHERE id = ?", (newsletter_id,))
            return _newsletter_from_row(self._fetch_one(cur, "newsletters", newsletter_id))

    def delete_newsletter(self, newsletter_id: str) -> None:
        with self._cursor("delete_newsletter") as cur:
            cur.execute("DELETE FROM newsletters WHERE id = ?", (newsletter_id,))
            if cur.rowcount == 0:
                raise RecordNotFoundError("newsletters", newsletter_id)

    def list_newsletters(self, user_id: str) -> list[Newsletter]:
        with self._cursor("list_newsletters") as cur:
            cur.execute(
                "SELECT * FROM newsletters WHERE user_id = ? ORDER BY sent_at, rowid",
                (user_id,),
            )
            return [_newsletter_from_row(row) for row in cur.fetchall()]
