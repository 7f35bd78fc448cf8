"""
Pytest configuration and fixtures

Tests run against a throwaway SQLite database file. The schema is built by
the Alembic migrations, so the partial unique indexes the routine engine
relies on are the real ones. Every table is emptied after each test.
"""
import pytest
import sys
import os
import tempfile
from uuid import uuid4
from datetime import date
from pathlib import Path

# Must be set before core.config is imported anywhere
_TEST_DB_DIR = tempfile.mkdtemp(prefix="routine_engine_tests_")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TEST_DB_DIR, 'test_routines.db')}"
os.environ.setdefault("LOG_FORMAT", "text")

# Add the parent directory to the path so we can import from services
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


@pytest.fixture(scope="session", autouse=True)
def _ensure_db_schema_is_at_head():
    """Apply the Alembic migrations to the test database once per run."""
    try:
        from alembic import command
        from alembic.config import Config

        api_root = Path(__file__).resolve().parents[1]
        cfg = Config(str(api_root / "alembic.ini"))
        cfg.set_main_option("script_location", str(api_root / "alembic"))
        command.upgrade(cfg, "head")
    except Exception as e:
        # Tests should fail loudly if migrations cannot be applied.
        raise RuntimeError(f"Failed to upgrade DB to Alembic head: {e}") from e


from core.database import Base, SessionLocal, engine


@pytest.fixture(autouse=True)
def _clean_tables():
    yield
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture
def db_session():
    """A plain session on the test database; application code commits as usual."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def other_session():
    """A second, independent session for interleaving concurrent writers."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def owner_id():
    return uuid4()


@pytest.fixture
def reference_date():
    """A Wednesday; its week runs Sunday 2024-01-07 .. Saturday 2024-01-13."""
    return date(2024, 1, 10)


def weekly_definition(days, time_of_day, items, routine_name=None, status="active"):
    """Payload for upsert_routine_definitions with a weekly schedule."""
    return {
        "routine_name": routine_name or f"{time_of_day} routine",
        "schedule_type": "weekly",
        "schedule_config": {"days_of_week": list(days)},
        "time_of_day": time_of_day,
        "status": status,
        "items": [{"item_name": name} for name in items],
    }


@pytest.fixture
def make_weekly_definition():
    return weekly_definition
