"""Shared pytest fixtures for SalesTrack tests.

Fixtures:
    - temp_db: Fresh file-backed SQLite database
    - memory_db: Fresh in-memory SQLite database
    - mock_config: Test configuration with temp paths
    - user / other_user: Two independent accounts
    - repository fixtures: One per entity table
    - recording_bridge: Notification bridge that remembers every reconcile
"""

from pathlib import Path
from typing import Generator

import pytest

from salestrack.core.config import Config
from salestrack.db.database import Database
from salestrack.db.identity import CredentialStore
from salestrack.db.models import FollowUpWithDetails, User
from salestrack.db.repositories import (
    CallLogRepository,
    ClientRepository,
    FollowUpRepository,
    PhoneNumberRepository,
    ProspectRepository,
    SaleRepository,
)
from salestrack.engine.notifications import NotificationBridge


@pytest.fixture
def temp_db(tmp_path: Path) -> Generator[Database, None, None]:
    """Create a temporary database for testing.

    Yields:
        Database connected to temp file, cleaned up after test
    """
    db_path = tmp_path / "test.db"
    db = Database(str(db_path))
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def memory_db() -> Generator[Database, None, None]:
    """Create an in-memory database for fast tests.

    Yields:
        Database using :memory:, no cleanup needed
    """
    db = Database(":memory:")
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def mock_config(tmp_path: Path) -> Config:
    """Test configuration with temp paths."""
    return Config(
        db_path=tmp_path / "test.db",
        log_path=tmp_path / "logs",
        default_industry="General",
        min_password_length=3,
        debug=True,
    )


@pytest.fixture
def credentials(memory_db: Database) -> CredentialStore:
    return CredentialStore(memory_db, min_password_length=3)


@pytest.fixture
def user(credentials: CredentialStore) -> User:
    """Signed-up account owning most test data."""
    return credentials.signup("amina", "s3cret", "Amina Nakato")


@pytest.fixture
def other_user(credentials: CredentialStore) -> User:
    """Second account for isolation checks."""
    return credentials.signup("brian", "pa55word", "Brian Okello")


@pytest.fixture
def clients(memory_db: Database) -> ClientRepository:
    return ClientRepository(memory_db)


@pytest.fixture
def prospects(memory_db: Database) -> ProspectRepository:
    return ProspectRepository(memory_db)


@pytest.fixture
def sales(memory_db: Database) -> SaleRepository:
    return SaleRepository(memory_db)


@pytest.fixture
def phone_numbers(memory_db: Database) -> PhoneNumberRepository:
    return PhoneNumberRepository(memory_db)


@pytest.fixture
def call_logs(memory_db: Database) -> CallLogRepository:
    return CallLogRepository(memory_db)


@pytest.fixture
def follow_ups(memory_db: Database) -> FollowUpRepository:
    return FollowUpRepository(memory_db)


class RecordingBridge(NotificationBridge):
    """Bridge that keeps a copy of every pending list it receives."""

    def __init__(self) -> None:
        self.calls: list[list[FollowUpWithDetails]] = []

    def reconcile(self, pending: list[FollowUpWithDetails]) -> None:
        self.calls.append(list(pending))

    @property
    def last_ids(self) -> list[int]:
        return [f.id for f in self.calls[-1]] if self.calls else []


@pytest.fixture
def recording_bridge() -> RecordingBridge:
    return RecordingBridge()


# Markers for different test types
def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line("markers", "database: marks tests requiring database")
