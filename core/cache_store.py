"""
Local cache store for offline reads.

A sqlite file holds one table per entity store. Each row is a JSON
document keyed by its ``id``; ``put`` overwrites whatever was there.
There is no versioning, no merge and no conflict detection.

Stores:
    jobs, customers, services   - mirrored rows from the platform
    user_profile                - the signed-in user's profile
    pending_actions             - queued mutations (auto-increment id)

Usage:
    cache = CacheStore("instance/offline_cache.sqlite3")
    cache.initialize()

    cache.put("jobs", {"id": "a1", "status": "Printing"})
    cache.get_all("jobs")           # [] when nothing was ever synced

    cache.close()

Thread Safety:
    One connection is shared by all Flask threads and the sync thread.
    An RLock serialises every statement against it.
"""

from __future__ import annotations

import json
import sqlite3
import threading
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

ENTITY_STORES = ("jobs", "customers", "services", "user_profile")
PENDING_ACTIONS = "pending_actions"


class CacheStore:
    """
    sqlite-backed key/value mirror of platform rows.

    Attributes:
        path: Database file path, or ``:memory:``
        is_initialized: Whether initialize() has created the schema
    """

    def __init__(self, path: str):
        self.path = path
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()

    @property
    def is_initialized(self) -> bool:
        return self._conn is not None

    def initialize(self) -> None:
        """
        Open the database and create the stores.

        Safe to call multiple times.
        """
        with self._lock:
            if self._conn is not None:
                return

            if self.path != ":memory:":
                Path(self.path).parent.mkdir(parents=True, exist_ok=True)

            conn = sqlite3.connect(self.path, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            for store in ENTITY_STORES:
                conn.execute(
                    f"CREATE TABLE IF NOT EXISTS {store} ("
                    "id TEXT PRIMARY KEY, "
                    "data TEXT NOT NULL, "
                    "cached_at REAL NOT NULL)"
                )
            conn.execute(
                f"CREATE TABLE IF NOT EXISTS {PENDING_ACTIONS} ("
                "id INTEGER PRIMARY KEY AUTOINCREMENT, "
                "data TEXT NOT NULL, "
                "created_at REAL NOT NULL)"
            )
            conn.commit()
            self._conn = conn
            logger.info(f"Offline cache opened at {self.path}")

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
                logger.info("Offline cache closed")

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            self.initialize()
        return self._conn

    @staticmethod
    def _check_store(store: str) -> None:
        if store not in ENTITY_STORES:
            raise ValueError(f"Unknown cache store: {store}")

    # =========================================================================
    # ENTITY STORES
    # =========================================================================

    def put(self, store: str, record: Dict[str, Any]) -> None:
        """Upsert one record by its ``id`` (last write wins)."""
        self._check_store(store)
        if record.get("id") is None:
            raise ValueError(f"Record for {store} has no id")
        with self._lock:
            conn = self._connection()
            conn.execute(
                f"INSERT OR REPLACE INTO {store} (id, data, cached_at) VALUES (?, ?, ?)",
                (str(record["id"]), json.dumps(record, default=str), time.time()),
            )
            conn.commit()

    def put_many(self, store: str, records: List[Dict[str, Any]]) -> int:
        """Upsert each record; returns how many were written."""
        self._check_store(store)
        rows = [
            (str(r["id"]), json.dumps(r, default=str), time.time())
            for r in records
            if r.get("id") is not None
        ]
        with self._lock:
            conn = self._connection()
            conn.executemany(
                f"INSERT OR REPLACE INTO {store} (id, data, cached_at) VALUES (?, ?, ?)",
                rows,
            )
            conn.commit()
        return len(rows)

    def get(self, store: str, key: str) -> Optional[Dict[str, Any]]:
        self._check_store(store)
        with self._lock:
            row = self._connection().execute(
                f"SELECT data FROM {store} WHERE id = ?", (str(key),)
            ).fetchone()
        return json.loads(row["data"]) if row else None

    def get_all(self, store: str) -> List[Dict[str, Any]]:
        """Every cached record in the store; empty list on a cold cache."""
        self._check_store(store)
        with self._lock:
            rows = self._connection().execute(
                f"SELECT data FROM {store} ORDER BY rowid"
            ).fetchall()
        return [json.loads(row["data"]) for row in rows]

    def last_cached_at(self, store: str) -> Optional[float]:
        """Epoch seconds of the newest write to the store, None if empty."""
        self._check_store(store)
        with self._lock:
            row = self._connection().execute(
                f"SELECT MAX(cached_at) AS newest FROM {store}"
            ).fetchone()
        return row["newest"] if row else None

    def delete(self, store: str, key: str) -> None:
        self._check_store(store)
        with self._lock:
            conn = self._connection()
            conn.execute(f"DELETE FROM {store} WHERE id = ?", (str(key),))
            conn.commit()

    def clear(self, store: str) -> None:
        self._check_store(store)
        with self._lock:
            conn = self._connection()
            conn.execute(f"DELETE FROM {store}")
            conn.commit()

    # =========================================================================
    # PENDING ACTIONS
    # =========================================================================

    def add_pending_action(self, action: Dict[str, Any]) -> int:
        """Queue a mutation for later replay; returns its queue id."""
        with self._lock:
            conn = self._connection()
            cursor = conn.execute(
                f"INSERT INTO {PENDING_ACTIONS} (data, created_at) VALUES (?, ?)",
                (json.dumps(action, default=str), time.time()),
            )
            conn.commit()
            return cursor.lastrowid

    def get_pending_actions(self) -> List[Dict[str, Any]]:
        """Queued actions oldest first, each with its queue ``id``."""
        with self._lock:
            rows = self._connection().execute(
                f"SELECT id, data, created_at FROM {PENDING_ACTIONS} ORDER BY id"
            ).fetchall()
        actions = []
        for row in rows:
            action = json.loads(row["data"])
            action["id"] = row["id"]
            action["queued_at"] = row["created_at"]
            actions.append(action)
        return actions

    def remove_pending_action(self, action_id: int) -> None:
        with self._lock:
            conn = self._connection()
            conn.execute(f"DELETE FROM {PENDING_ACTIONS} WHERE id = ?", (action_id,))
            conn.commit()
