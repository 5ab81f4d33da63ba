"""
envscope Store – SQLite persistence for scoped values
=====================================================

A single abstraction over the value database. It wraps one SQLite connection
(path provided via Settings) and exposes:

    • Bulk reads for a resolution chain (`get_values_for_scopes`)
    • Per-scope reads (`get_values_for_scope`, `get_value`)
    • Upserts and deletes (`set_value`, `delete_value`)
    • Transactional batches (`set_values_batch`, `delete_values_batch`,
      `replace_scope_values`)

Rows are keyed by (scope path, profile, key) with last-write-wins upserts.
A scope row is created the first time a value is written beneath it.

Usage (quick):
    from envscope.config import load_settings
    from envscope.store import Store

    with Store(load_settings()) as store:
        store.set_value("/home/me/proj", "default", "API_URL", "http://localhost")
        print(store.get_values_for_scope("/home/me/proj", "default"))

See also:
    envscope/store/schema.py   -> DDL + bootstrap()
    envscope/store/records.py  -> lightweight record dataclasses
"""

from __future__ import annotations

import logging
import pathlib
import sqlite3
import threading
from contextlib import contextmanager
from typing import Iterable, Iterator, List, Mapping, Optional, Sequence

from envscope.config import Settings
from envscope.errors import StoreError
from . import records
from .schema import SCHEMA_VERSION, bootstrap, get_schema_version

log = logging.getLogger(__name__)

_VALUE_COLUMNS = "path, profile, key, value, description, updated_at"

_UPSERT_SQL = (
    "INSERT INTO env_vars (path, profile, key, value, description, updated_at) "
    "VALUES (?, ?, ?, ?, ?, CURRENT_TIMESTAMP) "
    "ON CONFLICT(path, profile, key) DO UPDATE SET "
    "value = excluded.value, description = excluded.description, "
    "updated_at = CURRENT_TIMESTAMP"
)
_DELETE_SQL = "DELETE FROM env_vars WHERE path = ? AND profile = ? AND key = ?"
_ENSURE_SCOPE_SQL = (
    "INSERT OR IGNORE INTO env_scopes (path, created_at) VALUES (?, CURRENT_TIMESTAMP)"
)


class Store:
    """
    Persistent value store over a SQLite database.

    Parameters
    ----------
    settings:
        envscope Settings object (provides db_path).
    readonly:
        If True, database opened in SQLite read-only URI mode.

    Notes
    -----
    * Connection created once per instance; guarded by an RLock.
    * bootstrap() called on init to ensure schema exists.
    * Every sqlite3 failure surfaces as :class:`StoreError`.
    """

    def __init__(self, settings: Settings, *, readonly: bool = False) -> None:
        self.settings = settings
        self.db_path = settings.db_path
        self.readonly = readonly

        self._lock = threading.RLock()
        try:
            self._conn = self._connect()
            if not readonly:
                # Ensure tables exist (idempotent)
                bootstrap(self._conn)
        except sqlite3.Error as exc:
            if hasattr(self, "_conn"):
                self._conn.close()
            raise StoreError(f"failed to open database {self.db_path}: {exc}") from exc

        v = get_schema_version(self._conn)
        if v != SCHEMA_VERSION:
            log.warning("schema version %s differs from expected %s", v, SCHEMA_VERSION)

    # ------------------------------------------------------------------
    # Connection mgmt
    # ------------------------------------------------------------------
    def _connect(self) -> sqlite3.Connection:
        """Open and return a sqlite3 connection."""
        if self.readonly:
            path = f"file:{self.db_path}?mode=ro"
            return sqlite3.connect(path, uri=True, check_same_thread=False)
        if self.db_path != ":memory:":
            pathlib.Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        return sqlite3.connect(self.db_path, check_same_thread=False)

    def close(self) -> None:
        """Close the underlying sqlite connection."""
        with self._lock:
            self._conn.close()

    def __enter__(self) -> "Store":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @contextmanager
    def _transaction(self, what: str) -> Iterator[sqlite3.Cursor]:
        """Run a block in one transaction; roll back and raise StoreError on failure."""
        with self._lock:
            cur = self._conn.cursor()
            try:
                yield cur
                self._conn.commit()
            except sqlite3.Error as exc:
                self._conn.rollback()
                log.error("%s failed: %s", what, exc)
                raise StoreError(f"{what} failed: {exc}") from exc
            except BaseException:
                self._conn.rollback()
                raise

    def _query(self, what: str, sql: str, params: Sequence) -> List[tuple]:
        with self._lock:
            try:
                cur = self._conn.execute(sql, params)
                return cur.fetchall()
            except sqlite3.Error as exc:
                raise StoreError(f"{what} failed: {exc}") from exc

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def get_values_for_scopes(self, paths: Sequence[str], profile: str) -> List[records.StoredValue]:
        """Return every value stored at any of ``paths`` under ``profile``."""
        if not paths:
            return []
        placeholders = ",".join("?" for _ in paths)
        rows = self._query(
            "reading values",
            f"SELECT {_VALUE_COLUMNS} FROM env_vars "
            f"WHERE profile = ? AND path IN ({placeholders}) ORDER BY path, key",
            [profile, *paths],
        )
        return [records.StoredValue(*row) for row in rows]

    def get_values_for_scope(self, path: str, profile: str) -> List[records.StoredValue]:
        """Return the values stored directly at ``path``, ordered by key."""
        rows = self._query(
            "reading scope values",
            f"SELECT {_VALUE_COLUMNS} FROM env_vars WHERE path = ? AND profile = ? ORDER BY key",
            (path, profile),
        )
        return [records.StoredValue(*row) for row in rows]

    def get_value(self, path: str, profile: str, key: str) -> Optional[records.StoredValue]:
        rows = self._query(
            "reading value",
            f"SELECT {_VALUE_COLUMNS} FROM env_vars WHERE path = ? AND profile = ? AND key = ?",
            (path, profile, key),
        )
        return records.StoredValue(*rows[0]) if rows else None

    # ------------------------------------------------------------------
    # Single-row writes
    # ------------------------------------------------------------------
    def set_value(
        self,
        path: str,
        profile: str,
        key: str,
        value: str,
        description: Optional[str] = None,
    ) -> None:
        """Upsert one value; overwrites value, description and timestamp."""
        with self._transaction(f"setting {key}") as cur:
            cur.execute(_ENSURE_SCOPE_SQL, (path,))
            cur.execute(_UPSERT_SQL, (path, profile, key, value, description))
        log.info("set %s at %s [%s]", key, path, profile)

    def delete_value(self, path: str, profile: str, key: str) -> None:
        with self._transaction(f"deleting {key}") as cur:
            cur.execute(_DELETE_SQL, (path, profile, key))
        log.info("deleted %s at %s [%s]", key, path, profile)

    # ------------------------------------------------------------------
    # Batches (all-or-nothing)
    # ------------------------------------------------------------------
    def set_values_batch(
        self,
        path: str,
        profile: str,
        values: Mapping[str, str],
        descriptions: Optional[Mapping[str, Optional[str]]] = None,
    ) -> None:
        """Upsert many values at one scope in a single transaction."""
        descriptions = descriptions or {}
        with self._transaction("batch set") as cur:
            cur.execute(_ENSURE_SCOPE_SQL, (path,))
            cur.executemany(
                _UPSERT_SQL,
                [(path, profile, k, v, descriptions.get(k)) for k, v in values.items()],
            )
        log.info("batch set %d value(s) at %s [%s]", len(values), path, profile)

    def delete_values_batch(self, path: str, profile: str, keys: Iterable[str]) -> None:
        keys = list(keys)
        if not keys:
            return
        with self._transaction("batch delete") as cur:
            cur.executemany(_DELETE_SQL, [(path, profile, k) for k in keys])
        log.info("batch deleted %d value(s) at %s [%s]", len(keys), path, profile)

    def replace_scope_values(
        self,
        path: str,
        profile: str,
        values: Mapping[str, str],
        descriptions: Optional[Mapping[str, Optional[str]]] = None,
    ) -> None:
        """Make the local values at ``path`` exactly ``values``.

        Keys not present in ``values`` are deleted, the rest upserted, all in
        one transaction.
        """
        descriptions = descriptions or {}
        with self._transaction("replacing scope values") as cur:
            cur.execute(
                "SELECT key FROM env_vars WHERE path = ? AND profile = ?", (path, profile)
            )
            stale = [row[0] for row in cur.fetchall() if row[0] not in values]
            cur.executemany(_DELETE_SQL, [(path, profile, k) for k in stale])
            if values:
                cur.execute(_ENSURE_SCOPE_SQL, (path,))
                cur.executemany(
                    _UPSERT_SQL,
                    [(path, profile, k, v, descriptions.get(k)) for k, v in values.items()],
                )
        log.info(
            "replaced values at %s [%s]: %d kept, %d removed",
            path, profile, len(values), len(stale),
        )
