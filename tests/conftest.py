"""Test configuration and fixtures for the Library Desk MCP Server.

1. Isolated test databases - each test gets its own SQLite file
2. Configuration overrides - test-specific server configuration
3. A fixed clock - circulation workflows see the same "now" every run
4. Factories for members, books and loans owned by the test account
"""

import os
from collections.abc import Generator
from contextlib import contextmanager
from datetime import datetime, timedelta
from pathlib import Path

import logfire
import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from library_desk.config import ServerConfig, reset_config
from library_desk.database.schema import Base, BookStatusEnum, LoanStatusEnum, MemberStatusEnum
from library_desk.database.schema import Book as BookDB
from library_desk.database.schema import Loan as LoanDB
from library_desk.database.schema import Member as MemberDB
from library_desk.identity import AccountRole, StaffContext
from library_desk.models.settings import LibraryPolicy
from library_desk.resources.cache import resource_cache

OWNER_ID = "owner_test"
OTHER_OWNER_ID = "owner_other"
STAFF_NAME = "Test Staff"
NOW = datetime(2026, 3, 10, 12, 0, 0)

# === Pytest Configuration ===


def pytest_configure(config):  # noqa: ARG001
    """Keep spans local during tests."""
    logfire.configure(send_to_logfire=False, console=False)


# === Test Database Fixtures ===


@pytest.fixture
def test_db_path(tmp_path: Path) -> Generator[Path, None, None]:
    """Provide a temporary database path for each test."""
    db_path = tmp_path / "test_library_desk.db"
    yield db_path

    if db_path.exists():
        db_path.unlink()


@pytest.fixture
def test_database_url(test_db_path: Path) -> str:
    """Provide a SQLAlchemy database URL for testing."""
    return f"sqlite:///{test_db_path}"


@pytest.fixture
def test_engine(test_database_url: str):
    """Engine with foreign keys enforced, like the server's."""
    engine = create_engine(
        test_database_url,
        echo=False,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):  # noqa: ARG001
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> sessionmaker:
    """Session factory bound to the test database.

    Tests that simulate a second desk open another session from here.
    """
    return sessionmaker(
        bind=test_engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )


@pytest.fixture
def test_db_session(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """Provide a SQLAlchemy session for database tests."""
    session = session_factory()

    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


# === Configuration Fixtures ===


@pytest.fixture
def test_config(test_db_path: Path) -> Generator[ServerConfig, None, None]:
    """Provide a test-specific server configuration."""
    reset_config()

    config = ServerConfig(
        server_name="test-library-desk",
        server_version="0.0.1-test",
        database_path=test_db_path,
        debug=True,
        log_level="DEBUG",
        owner_id=OWNER_ID,
        staff_name=STAFF_NAME,
        # Disable caching in tests
        resource_cache_ttl=0,
    )

    yield config

    reset_config()


@pytest.fixture
def clean_env() -> Generator[None, None, None]:
    """Provide an environment without LIBRARY_DESK_* variables."""
    original_env = os.environ.copy()

    for key in list(os.environ.keys()):
        if key.startswith("LIBRARY_DESK_"):
            del os.environ[key]

    yield

    os.environ.clear()
    os.environ.update(original_env)


# === Circulation Fixtures ===


@pytest.fixture
def staff() -> StaffContext:
    return StaffContext(owner_id=OWNER_ID, actor=STAFF_NAME)


@pytest.fixture
def bookstore_staff() -> StaffContext:
    return StaffContext(owner_id=OWNER_ID, actor=STAFF_NAME, role=AccountRole.BOOK_STORE)


@pytest.fixture
def policy() -> LibraryPolicy:
    return LibraryPolicy()


@pytest.fixture
def clock():
    """Clock frozen at ``NOW``."""
    return lambda: NOW


@pytest.fixture
def make_member(test_db_session):
    """Factory for committed members of the test account."""

    def _make(
        name: str = "Test Member",
        status: MemberStatusEnum = MemberStatusEnum.ACTIVE,
        owner_id: str = OWNER_ID,
        **kwargs,
    ) -> MemberDB:
        member = MemberDB(owner_id=owner_id, name=name, status=status, **kwargs)
        test_db_session.add(member)
        test_db_session.commit()
        return member

    return _make


@pytest.fixture
def make_book(test_db_session):
    """Factory for committed books of the test account."""

    def _make(
        title: str = "Test Book",
        stock: int = 1,
        status: BookStatusEnum | None = None,
        price: float = 12.5,
        owner_id: str = OWNER_ID,
    ) -> BookDB:
        if status is None:
            status = BookStatusEnum.AVAILABLE if stock > 0 else BookStatusEnum.CHECKED_OUT
        book = BookDB(
            owner_id=owner_id,
            title=title,
            author="Test Author",
            stock=stock,
            status=status,
            price=price,
        )
        test_db_session.add(book)
        test_db_session.commit()
        return book

    return _make


@pytest.fixture
def make_loan(test_db_session):
    """Factory for committed loans; the copy is assumed to be off the shelf already."""

    def _make(
        member: MemberDB,
        book: BookDB,
        due_date: datetime | None = None,
        checkout_date: datetime | None = None,
        status: LoanStatusEnum = LoanStatusEnum.BORROWED,
        owner_id: str = OWNER_ID,
        **kwargs,
    ) -> LoanDB:
        due_date = due_date or NOW + timedelta(days=7)
        loan = LoanDB(
            owner_id=owner_id,
            book_id=book.id,
            member_id=member.id,
            checkout_date=checkout_date or due_date - timedelta(days=14),
            due_date=due_date,
            status=status,
            **kwargs,
        )
        test_db_session.add(loan)
        test_db_session.commit()
        return loan

    return _make


@pytest.fixture
def member(make_member) -> MemberDB:
    return make_member()


@pytest.fixture
def book(make_book) -> BookDB:
    return make_book()


# === MCP Handler Fixtures ===

SESSION_SCOPE_TARGETS = (
    "library_desk.tools.circulation.session_scope",
    "library_desk.tools.settings.session_scope",
    "library_desk.resources.loans.session_scope",
    "library_desk.resources.members.session_scope",
    "library_desk.resources.settings.session_scope",
)


@pytest.fixture
def mock_session_scope(test_db_session, test_db_path, monkeypatch):
    """Run tool and resource handlers against the test session and account."""

    @contextmanager
    def _mock_session_scope():
        try:
            yield test_db_session
            test_db_session.commit()
        except Exception:
            test_db_session.rollback()
            raise

    for target in SESSION_SCOPE_TARGETS:
        monkeypatch.setattr(target, _mock_session_scope)

    monkeypatch.setenv("LIBRARY_DESK_OWNER_ID", OWNER_ID)
    monkeypatch.setenv("LIBRARY_DESK_STAFF_NAME", STAFF_NAME)
    monkeypatch.setenv("LIBRARY_DESK_DATABASE_PATH", str(test_db_path))
    monkeypatch.setenv("LIBRARY_DESK_RESOURCE_CACHE_TTL", "0")
    reset_config()

    return test_db_session


# === Cleanup Fixtures ===


@pytest.fixture(autouse=True)
def cleanup_after_test():
    """Reset global state between tests."""
    yield

    reset_config()
    resource_cache.invalidate()
