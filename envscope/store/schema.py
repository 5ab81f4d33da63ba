"""Schema bootstrap + migrations for the envscope value database."""

from __future__ import annotations

import sqlite3
from typing import Optional

# Increment whenever schema changes (add a migration step below)
SCHEMA_VERSION = 2

# -- DDL statements ---------------------------------------------------------
# Executed in order during bootstrap(). Safe to call repeatedly.
SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS schema_meta (
        key TEXT PRIMARY KEY,
        value TEXT
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS env_scopes (
        path TEXT PRIMARY KEY,
        label TEXT,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS env_vars (
        path TEXT NOT NULL,
        profile TEXT NOT NULL,
        key TEXT NOT NULL,
        value TEXT NOT NULL,
        description TEXT,
        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        PRIMARY KEY (path, profile, key)
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_env_vars_path_profile ON env_vars(path, profile);",
]


def _columns(conn: sqlite3.Connection, table: str) -> set:
    cur = conn.execute(f"PRAGMA table_info({table})")
    return {row[1] for row in cur.fetchall()}


def migrate(conn: sqlite3.Connection) -> None:
    """Bring databases written by older versions up to date.

    Version 1 stored ``env_vars`` without a ``description`` column.
    """
    if "description" not in _columns(conn, "env_vars"):
        conn.execute("ALTER TABLE env_vars ADD COLUMN description TEXT")


def get_schema_version(conn: sqlite3.Connection) -> Optional[int]:
    """Version stamped in ``schema_meta``; None for a fresh or foreign file."""
    try:
        row = conn.execute("SELECT value FROM schema_meta WHERE key = 'version'").fetchone()
    except sqlite3.OperationalError:  # no schema_meta table yet
        return None
    try:
        return int(row[0]) if row else None
    except (TypeError, ValueError):
        return None


def bootstrap(conn: sqlite3.Connection) -> None:
    """Create tables if missing, migrate, and stamp schema version.

    Safe to call more than once. A file stamped by a newer envscope is left
    untouched and rejected.
    """
    found = get_schema_version(conn)
    if found is not None and found > SCHEMA_VERSION:
        raise sqlite3.DatabaseError(
            f"schema version {found} is newer than this envscope supports ({SCHEMA_VERSION})"
        )
    cur = conn.cursor()
    for stmt in SCHEMA_STATEMENTS:
        cur.executescript(stmt)
    if found != SCHEMA_VERSION:
        migrate(conn)
        cur.execute(
            "INSERT OR REPLACE INTO schema_meta(key, value) VALUES('version', ?)",
            (str(SCHEMA_VERSION),),
        )
    conn.commit()
