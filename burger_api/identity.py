"""Account records, email uniqueness and credential checks."""
from __future__ import annotations

import logging
import sqlite3
import threading
from typing import Optional

from passlib.context import CryptContext

from .database import Database, current_timestamp, parse_datetime, serialize_datetime
from .errors import EmailTaken, InvalidCredentials, MissingField, Unauthorized
from .models import User

logger = logging.getLogger("burgers.identity")

_pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return _pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    try:
        return _pwd_context.verify(password, hashed)
    except ValueError:
        return False


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not isinstance(value, str) or not value.strip()


class IdentityStore:
    """Owns user records stored in the ``users`` table."""

    def __init__(self, database: Database) -> None:
        self._database = database
        self._lock = threading.Lock()

    def create(self, email: Optional[str], password: Optional[str], name: Optional[str]) -> User:
        """Create a new account.

        All three fields are required; presence is checked before the email
        is compared against existing accounts.
        """

        if _is_blank(email) or _is_blank(password) or _is_blank(name):
            raise MissingField()

        normalized_email = normalize_email(email)  # type: ignore[arg-type]
        normalized_name = name.strip()  # type: ignore[union-attr]
        password_hash = hash_password(password)  # type: ignore[arg-type]
        created_at = current_timestamp()

        with self._lock, self._database.transaction() as conn:
            try:
                cursor = conn.execute(
                    """
                    INSERT INTO users (name, email, password_hash, created_at)
                    VALUES (?, ?, ?, ?)
                    """,
                    (normalized_name, normalized_email, password_hash, serialize_datetime(created_at)),
                )
            except sqlite3.IntegrityError as exc:
                raise EmailTaken() from exc
            user_id = int(cursor.lastrowid)

        logger.info("Registered user %s", user_id)
        return User(id=user_id, name=normalized_name, email=normalized_email, created_at=created_at)

    def verify(self, email: Optional[str], password: Optional[str]) -> User:
        """Return the user owning the credentials or raise :class:`InvalidCredentials`.

        Unknown emails and wrong passwords are indistinguishable to callers.
        """

        if _is_blank(email) or _is_blank(password):
            raise InvalidCredentials()

        with self._database.transaction() as conn:
            row = conn.execute(
                "SELECT * FROM users WHERE email = ?",
                (normalize_email(email),),  # type: ignore[arg-type]
            ).fetchone()

        if row is None:
            _pwd_context.dummy_verify()
            raise InvalidCredentials()
        if not verify_password(password, str(row["password_hash"])):  # type: ignore[arg-type]
            raise InvalidCredentials()
        return self._row_to_user(row)

    def get(self, user_id: int) -> Optional[User]:
        with self._database.transaction() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_user(row)

    def update(
        self,
        user_id: int,
        *,
        email: Optional[str] = None,
        password: Optional[str] = None,
        name: Optional[str] = None,
    ) -> User:
        """Apply the supplied fields; ``None`` or blank values are left unchanged."""

        updates = []
        values: list[object] = []
        if not _is_blank(email):
            updates.append("email = ?")
            values.append(normalize_email(email))  # type: ignore[arg-type]
        if not _is_blank(name):
            updates.append("name = ?")
            values.append(name.strip())  # type: ignore[union-attr]
        if not _is_blank(password):
            updates.append("password_hash = ?")
            values.append(hash_password(password))  # type: ignore[arg-type]

        with self._lock, self._database.transaction() as conn:
            if updates:
                values.append(user_id)
                try:
                    cursor = conn.execute(
                        f"UPDATE users SET {', '.join(updates)} WHERE id = ?",
                        values,
                    )
                except sqlite3.IntegrityError as exc:
                    raise EmailTaken("User with such email already exists") from exc
                if cursor.rowcount == 0:
                    raise Unauthorized()
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()

        if row is None:
            raise Unauthorized()
        if updates:
            logger.info("Updated profile for user %s", user_id)
        return self._row_to_user(row)

    def delete(self, user_id: int) -> bool:
        with self._lock, self._database.transaction() as conn:
            cursor = conn.execute("DELETE FROM users WHERE id = ?", (user_id,))
            deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Removed user %s", user_id)
        return deleted

    def _row_to_user(self, row: sqlite3.Row) -> User:
        return User(
            id=int(row["id"]),
            name=str(row["name"]),
            email=str(row["email"]),
            created_at=parse_datetime(str(row["created_at"])),
        )


__all__ = ["IdentityStore", "hash_password", "normalize_email", "verify_password"]
