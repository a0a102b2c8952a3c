"""User accounts and password verification.

Passwords are hashed with passlib (pbkdf2_sha256, random per-user salt);
the raw password is never stored, logged, or returned.

Usage:
    from salestrack.db.identity import CredentialStore

    store = CredentialStore(db)
    user = store.signup("amina", "s3cret", "Amina N.")
    user = store.signin("amina", "s3cret")
"""

import sqlite3
from typing import Optional

from passlib.context import CryptContext

from salestrack.core.config import get_config
from salestrack.core.exceptions import (
    ConstraintViolationError,
    DuplicateUsernameError,
    InvalidCredentialsError,
    ValidationError,
)
from salestrack.core.logging import get_logger
from salestrack.db.database import Database
from salestrack.db.models import User

logger = get_logger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

INVALID_CREDENTIALS_MESSAGE = "Invalid username or password"

# Verified against when the username is unknown, so both failure paths cost one hash check
_DUMMY_HASH = pwd_context.hash("salestrack-unknown-user")


def hash_password(password: str) -> str:
    """Return a one-way salted hash of password."""
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    """Check plain against a stored hash. Malformed hashes never match."""
    try:
        return pwd_context.verify(plain, hashed)
    except (ValueError, TypeError):
        return False


class CredentialStore:
    """Sign-up, sign-in and password overwrite for user records."""

    def __init__(self, db: Database, min_password_length: Optional[int] = None) -> None:
        self._db = db
        if min_password_length is None:
            min_password_length = get_config().min_password_length
        self._min_password_length = min_password_length

    @staticmethod
    def _row_to_user(row: sqlite3.Row) -> User:
        return User(
            id=row["id"],
            username=row["username"],
            password_hash=row["password_hash"],
            name=row["name"],
        )

    def signup(self, username: str, password: str, name: str) -> User:
        """Create an account.

        Args:
            username: Unique login name (surrounding whitespace ignored)
            password: Raw password, hashed before storage
            name: Display name

        Returns:
            The new user with its assigned id

        Raises:
            ValidationError: If a field is blank or the password is too short
            DuplicateUsernameError: If the username is taken
        """
        username = (username or "").strip()
        name = (name or "").strip()
        if not username or not password or not name:
            raise ValidationError("Username, password and name are required")
        if len(password) < self._min_password_length:
            raise ValidationError(
                f"Password must be at least {self._min_password_length} characters"
            )

        password_hash = hash_password(password)
        try:
            with self._db.transaction():
                if self._find_by_username(username) is not None:
                    raise DuplicateUsernameError(f"Username already exists: {username}")
                user_id = self._db.next_id()
                self._db.execute(
                    "INSERT INTO users (id, username, password_hash, name) VALUES (?, ?, ?, ?)",
                    (user_id, username, password_hash, name),
                )
        except ConstraintViolationError as e:
            raise DuplicateUsernameError(f"Username already exists: {username}") from e

        logger.info("User created", extra={"context": {"user_id": user_id}})
        return User(id=user_id, username=username, password_hash=password_hash, name=name)

    def signin(self, username: str, password: str) -> User:
        """Authenticate a user.

        Raises:
            InvalidCredentialsError: Unknown username or wrong password
                (same message either way)
        """
        user = self._find_by_username((username or "").strip())
        if user is None:
            verify_password(password or "", _DUMMY_HASH)
            logger.info("Sign-in failed")
            raise InvalidCredentialsError(INVALID_CREDENTIALS_MESSAGE)

        if not verify_password(password or "", user.password_hash):
            logger.info("Sign-in failed")
            raise InvalidCredentialsError(INVALID_CREDENTIALS_MESSAGE)

        logger.info("User signed in", extra={"context": {"user_id": user.id}})
        return user

    def update_password(self, user_id: int, new_password_hash: str) -> bool:
        """Overwrite a user's password hash.

        Used by the password-reset flow once its token has been validated.
        Returns True if a row was updated.
        """
        with self._db.transaction():
            cursor = self._db.execute(
                "UPDATE users SET password_hash = ? WHERE id = ?",
                (new_password_hash, user_id),
            )
        updated = cursor.rowcount > 0
        logger.info(
            "Password updated" if updated else "Password update matched no user",
            extra={"context": {"user_id": user_id}},
        )
        return updated

    def get_user(self, user_id: int) -> Optional[User]:
        """Get user by ID."""
        row = self._db.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        return self._row_to_user(row) if row else None

    def get_user_by_username(self, username: str) -> Optional[User]:
        """Get user by login name."""
        return self._find_by_username((username or "").strip())

    def _find_by_username(self, username: str) -> Optional[User]:
        row = self._db.execute(
            "SELECT * FROM users WHERE username = ?", (username,)
        ).fetchone()
        return self._row_to_user(row) if row else None
