"""Shared test fixtures and configuration.

Sets up fake environment variables so worksummary.config doesn't sys.exit(),
and provides SQLite stores backed by a temp file.
"""

import os

# Patch env vars BEFORE any worksummary imports
os.environ.setdefault("API_KEY", "fake-api-key-for-tests")
os.environ.setdefault("DATABASE_PATH", ":memory:")
os.environ.setdefault("SMTP_HOST", "")
os.environ.setdefault("APP_BASE_URL", "https://pm.example.com")

import pytest


@pytest.fixture
def tmp_db_path(tmp_path):
    """Return a temporary SQLite DB path shared by all stores in a test."""
    return str(tmp_path / "test_worksummary.db")


@pytest.fixture
def user_db(tmp_db_path):
    from worksummary.data.db import UserDB
    return UserDB(db_path=tmp_db_path)


@pytest.fixture
def allocation_db(tmp_db_path):
    from worksummary.data.db import AllocationDB
    return AllocationDB(db_path=tmp_db_path)


@pytest.fixture
def preference_db(tmp_db_path):
    from worksummary.data.db import EmailPreferenceDB
    return EmailPreferenceDB(db_path=tmp_db_path)


@pytest.fixture
def summary_log(tmp_db_path):
    from worksummary.data.db import SummaryLogDB
    return SummaryLogDB(db_path=tmp_db_path)
