# ABOUTME: Opens Tome's provider configuration database and brings its schema up to date.
# ABOUTME: Creates the file on first use, then applies any migrations not yet recorded.

import logging
import sqlite3
from pathlib import Path

from tome.db.schema import MIGRATIONS, SCHEMA_V1

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path.home() / ".tome" / "tome.db"


def get_schema_version(conn: sqlite3.Connection) -> int:
    """Highest applied schema version, or 0 for a database with no tables yet."""
    has_table = conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = 'schema_version'"
    ).fetchone()
    if not has_table:
        return 0
    row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
    return row[0] or 0


def _migrate(conn: sqlite3.Connection) -> None:
    version = get_schema_version(conn)
    if version == 0:
        conn.executescript(SCHEMA_V1)
        version = 1
    for target, script in MIGRATIONS:
        if target > version:
            logger.info("Migrating provider config database to version %d", target)
            conn.executescript(script)


def open_database(path: Path | None = None) -> sqlite3.Connection:
    """Connect to the provider config store, creating and migrating it as needed.

    Rows come back as ``sqlite3.Row``. The journal is WAL with a busy
    timeout, so the CLI and a running server can share one file. The web
    server's event loop may run on a different thread from the one that
    opened the connection, hence ``check_same_thread=False``; callers never
    use it from two threads at once.

    Args:
        path: Database file; ``DEFAULT_DB_PATH`` when omitted. Missing parent
            directories are created.
    """
    db_path = path or DEFAULT_DB_PATH
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA busy_timeout=5000")
    _migrate(conn)
    return conn
