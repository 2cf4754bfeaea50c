from __future__ import annotations

import asyncio
import sqlite3
from pathlib import Path
from typing import Optional, Protocol

from mpos.domain.errors import PersistenceError


class KeyValueStore(Protocol):
    async def get_item(self, key: str) -> Optional[str]: ...
    async def set_item(self, key: str, value: str) -> None: ...
    async def remove_item(self, key: str) -> None: ...
    async def keys(self) -> list[str]: ...
    async def clear(self) -> None: ...


class SqliteKeyValueStore:
    """String-keyed persistent store backed by a single sqlite table.

    Every write touches exactly one row and commits on its own, so a key is
    either fully written or untouched. Nothing spans more than one key.
    Blocking sqlite calls run in a worker thread so callers can await them.
    """

    def __init__(self, db_path: Path | str):
        self.db_path = str(db_path)

    def _conn(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path)

    def init_db(self) -> None:
        self.run_migrations()

    def run_migrations(self) -> None:
        conn = self._conn()
        try:
            cur = conn.cursor()
            cur.execute("BEGIN")
            cur.execute("CREATE TABLE IF NOT EXISTS schema_migrations (version INTEGER PRIMARY KEY, applied_at TEXT NOT NULL)")
            cur.execute("SELECT COALESCE(MAX(version), 0) FROM schema_migrations")
            current_version = int(cur.fetchone()[0])

            migrations = [
                (1, self._migration_v1_base),
            ]

            for version, migration in migrations:
                if version <= current_version:
                    continue
                migration(cur)
                cur.execute(
                    "INSERT INTO schema_migrations (version, applied_at) VALUES (?, datetime('now'))",
                    (version,),
                )
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            raise PersistenceError("Store migration failed.") from exc
        finally:
            conn.close()

    def _migration_v1_base(self, cur: sqlite3.Cursor) -> None:
        cur.execute(
            """
        CREATE TABLE IF NOT EXISTS kv_store (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            updated_at TEXT NOT NULL DEFAULT (datetime('now'))
        )
        """
        )

    def integrity_check(self) -> str:
        conn = self._conn()
        try:
            row = conn.execute("PRAGMA integrity_check").fetchone()
            return str(row[0]) if row else "unknown"
        finally:
            conn.close()

    # ---- sync primitives ----

    def _get(self, key: str) -> Optional[str]:
        conn = self._conn()
        try:
            row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
            return row[0] if row else None
        finally:
            conn.close()

    def _set(self, key: str, value: str) -> None:
        conn = self._conn()
        try:
            conn.execute(
                """
                INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, datetime('now'))
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                """,
                (key, value),
            )
            conn.commit()
        finally:
            conn.close()

    def _remove(self, key: str) -> None:
        conn = self._conn()
        try:
            conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
            conn.commit()
        finally:
            conn.close()

    def _keys(self) -> list[str]:
        conn = self._conn()
        try:
            return [r[0] for r in conn.execute("SELECT key FROM kv_store ORDER BY key")]
        finally:
            conn.close()

    def _clear(self) -> None:
        conn = self._conn()
        try:
            conn.execute("DELETE FROM kv_store")
            conn.commit()
        finally:
            conn.close()

    # ---- async api ----

    async def get_item(self, key: str) -> Optional[str]:
        try:
            return await asyncio.to_thread(self._get, key)
        except sqlite3.Error as exc:
            raise PersistenceError(f"Could not read '{key}'.", key=key) from exc

    async def set_item(self, key: str, value: str) -> None:
        try:
            await asyncio.to_thread(self._set, key, value)
        except sqlite3.Error as exc:
            raise PersistenceError(f"Could not write '{key}'.", key=key) from exc

    async def remove_item(self, key: str) -> None:
        try:
            await asyncio.to_thread(self._remove, key)
        except sqlite3.Error as exc:
            raise PersistenceError(f"Could not remove '{key}'.", key=key) from exc

    async def keys(self) -> list[str]:
        try:
            return await asyncio.to_thread(self._keys)
        except sqlite3.Error as exc:
            raise PersistenceError("Could not list keys.") from exc

    async def clear(self) -> None:
        try:
            await asyncio.to_thread(self._clear)
        except sqlite3.Error as exc:
            raise PersistenceError("Could not clear store.") from exc
