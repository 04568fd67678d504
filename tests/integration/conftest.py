import os
from collections.abc import Generator
from typing import Any

import psycopg
import pytest

from reportdesk.config.settings import Settings
from reportdesk.database.connection import close_pool, get_connection, init_pool
from reportdesk.database.postgres_backend import PostgresStateBackend

TEST_KEY_PREFIX = "itest:"


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "reportdesk_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
        with get_connection() as conn:
            conn.execute("SELECT 1")
    except Exception as e:
        close_pool()
        pytest.skip(f"PostgreSQL test DB not available: {e}. Set DB_* env to run.")
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def state_backend(integration_pool: None) -> Generator[PostgresStateBackend, None, None]:
    backend = PostgresStateBackend()
    backend.ensure_schema()
    yield backend
    with get_connection() as conn:
        conn.execute("DELETE FROM app_state WHERE key LIKE %s", (f"{TEST_KEY_PREFIX}%",))
        conn.commit()
