import os
from collections.abc import Generator
from pathlib import Path

import psycopg
import pytest

from docpipe.config.settings import Settings
from docpipe.database.connection import build_conninfo, close_pool, get_connection, init_pool

SCHEMA_PATH = Path(__file__).resolve().parents[2] / "sql" / "schema.sql"


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "docpipe_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        with psycopg.connect(build_conninfo(test_settings), connect_timeout=3) as conn:
            conn.execute(SCHEMA_PATH.read_text())
    except Exception as e:
        pytest.skip(f"PostgreSQL test DB not available: {e}. Set DB_* env to run.")
    init_pool(test_settings)
    try:
        yield
    finally:
        close_pool()


def _truncate() -> None:
    with get_connection() as conn:
        conn.execute("DELETE FROM file_jobs")
        conn.execute("DELETE FROM file_records")
        conn.commit()


@pytest.fixture
def clean_tables(integration_pool: None) -> Generator[None, None, None]:
    _truncate()
    yield
    _truncate()
