"""
Pytest configuration for DustyDB.

Provides fixtures for:
- Sample record types (single and composite keys)
- In-memory and file-backed databases
- Settings isolation (environment + cached settings)
- PostgreSQL connection details for integration tests
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Generator, List, Optional

import pytest
from pydantic import Field

from dustydb import Database, FileStore, MemoryStore, Model, Record
from dustydb.config import Settings, get_settings


class Author(Record):
    key_fields = ("name",)

    name: Optional[str] = None
    email: Optional[str] = None


class Book(Record):
    key_fields = ("author", "title")
    table_name = "books"

    author: Optional[str] = None
    title: Optional[str] = None
    year: Optional[int] = None
    tags: List[str] = Field(default_factory=list)


class Counter(Record):
    key_fields = ("id",)

    id: Optional[int] = None
    hits: int = 0


_SETTINGS_ENV = (
    "DUSTYDB_STORE",
    "DUSTYDB_PATH",
    "DUSTYDB_UNKNOWN_ATTRIBUTES",
    "DUSTYDB_RETRY_ATTEMPTS",
    "DB_TABLE",
    "LOG_LEVEL",
    "LOG_JSON",
)


@pytest.fixture
def clean_settings(monkeypatch, tmp_path: Path) -> Generator[None, None, None]:
    """
    Isolate settings from the developer environment and the settings cache.

    Runs from an empty directory so no `.env` file is picked up.
    """
    for name in _SETTINGS_ENV:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def db(store: MemoryStore) -> Generator[Database, None, None]:
    database = Database(store)
    yield database
    database.close()


@pytest.fixture
def authors(db: Database) -> Model:
    return db.model(Author)


@pytest.fixture
def books(db: Database) -> Model:
    return db.model(Book)


@pytest.fixture
def counters(db: Database) -> Model:
    return db.model(Counter)


@pytest.fixture
def file_store(tmp_path: Path) -> FileStore:
    return FileStore(tmp_path / "dusty.db")


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture for PostgreSQL integration tests.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "dustydb"),
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    """
    Database connection string for integration tests.
    """
    return (
        f"postgresql://{test_settings.db_user}:{test_settings.db_password}"
        f"@{test_settings.db_host}:{test_settings.db_port}/{test_settings.db_name}"
    )
