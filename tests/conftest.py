# ABOUTME: Shared pytest fixtures for Tome tests.
# ABOUTME: Provides a migrated temp database, the config repository, and a fake clock.

import sqlite3
from collections.abc import Iterator
from pathlib import Path

import pytest

from tests.fixtures.fakes import FakeClock
from tome.db.connection import open_database
from tome.db.provider_configs import ProviderConfigRepository


@pytest.fixture
def fixtures_dir() -> Path:
    """Path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "tome.db"


@pytest.fixture
def conn(db_path: Path) -> Iterator[sqlite3.Connection]:
    """An open, fully migrated Tome database."""
    connection = open_database(db_path)
    yield connection
    connection.close()


@pytest.fixture
def repo(conn: sqlite3.Connection) -> ProviderConfigRepository:
    return ProviderConfigRepository(conn)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def calibre_library(tmp_path: Path) -> Path:
    """A Calibre library directory with a small metadata.db.

    Book 1 is fully populated; book 2 has only a title and author and uses
    Calibre's "no date" pubdate sentinel.
    """
    library = tmp_path / "Calibre Library"
    library.mkdir()
    db = sqlite3.connect(library / "metadata.db")
    db.executescript(
        """
        CREATE TABLE books (id INTEGER PRIMARY KEY, title TEXT, pubdate TEXT,
                            series_index REAL DEFAULT 1.0);
        CREATE TABLE authors (id INTEGER PRIMARY KEY, name TEXT);
        CREATE TABLE books_authors_link (id INTEGER PRIMARY KEY, book INTEGER, author INTEGER);
        CREATE TABLE comments (id INTEGER PRIMARY KEY, book INTEGER, text TEXT);
        CREATE TABLE publishers (id INTEGER PRIMARY KEY, name TEXT);
        CREATE TABLE books_publishers_link (id INTEGER PRIMARY KEY, book INTEGER,
                                            publisher INTEGER);
        CREATE TABLE series (id INTEGER PRIMARY KEY, name TEXT);
        CREATE TABLE books_series_link (id INTEGER PRIMARY KEY, book INTEGER, series INTEGER);
        CREATE TABLE ratings (id INTEGER PRIMARY KEY, rating INTEGER);
        CREATE TABLE books_ratings_link (id INTEGER PRIMARY KEY, book INTEGER, rating INTEGER);
        CREATE TABLE tags (id INTEGER PRIMARY KEY, name TEXT);
        CREATE TABLE books_tags_link (id INTEGER PRIMARY KEY, book INTEGER, tag INTEGER);
        CREATE TABLE identifiers (id INTEGER PRIMARY KEY, book INTEGER, type TEXT, val TEXT);

        INSERT INTO books VALUES (1, 'Dune', '1965-08-01T00:00:00+00:00', 1.0);
        INSERT INTO books VALUES (2, 'Loose Notes', '0101-01-01T00:00:00+00:00', 1.0);
        INSERT INTO authors VALUES (1, 'Frank Herbert'), (2, 'Anonymous');
        INSERT INTO books_authors_link VALUES (1, 1, 1), (2, 2, 2);
        INSERT INTO comments VALUES (1, 1, 'A desert planet and its spice.');
        INSERT INTO publishers VALUES (1, 'Chilton Books');
        INSERT INTO books_publishers_link VALUES (1, 1, 1);
        INSERT INTO series VALUES (1, 'Dune Chronicles');
        INSERT INTO books_series_link VALUES (1, 1, 1);
        INSERT INTO ratings VALUES (1, 8);
        INSERT INTO books_ratings_link VALUES (1, 1, 1);
        INSERT INTO tags VALUES (1, 'Science Fiction'), (2, 'Classic');
        INSERT INTO books_tags_link VALUES (1, 1, 1), (2, 1, 2);
        INSERT INTO identifiers VALUES (1, 1, 'isbn', '978-0-441-17271-9');
        """
    )
    db.commit()
    db.close()
    return library
