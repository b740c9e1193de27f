"""
Offline cache and background sync.

Reads of jobs, customers and services go to the platform first. Every
row that comes back is upserted into the local CacheStore by id. When the
platform is unreachable, the last cached rows are returned instead and
flagged stale. Reads never raise; a cold cache gives an empty list.

Writes made while offline can be queued with queue_action(). The replay
worker (SyncService) drains the queue once the platform answers again,
oldest first, last write wins.

Thread Model:
    Main Thread (Flask)
    └── request handlers use their own OfflineSync (user's gateway)

    OfflineSync thread (background)
    └── periodic sync_all() + replay with its OWN service gateway

Usage:
    sync = OfflineSync(gateway, cache)
    result = sync.fetch_jobs(customer_id=session.customer_id)
    if result.is_stale:
        # show "offline" banner, still render result.items
        pass
"""

from __future__ import annotations

import sqlite3
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from core.cache_store import CacheStore
from core.exceptions import RemoteCallError
from core.gateway import DataGateway
from core.timeutil import iso_now
from models.cached import CachedResult
from logging_config import get_logger, set_thread_name


# Module logger
logger = get_logger(__name__)

QUEUEABLE_METHODS = ("insert", "update", "upsert", "delete")


@dataclass
class ReplayReport:
    """What one replay pass did."""

    applied: int = 0
    dropped: int = 0
    remaining: int = 0
    interrupted: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "applied": self.applied,
            "dropped": self.dropped,
            "remaining": self.remaining,
            "interrupted": self.interrupted,
        }


class OfflineSync:
    """
    Remote-first reads with a local fallback, plus the pending-action queue.

    Args:
        gateway: Platform gateway used for reads and replays
        cache: Local mirror
    """

    def __init__(self, gateway: DataGateway, cache: CacheStore):
        self._gateway = gateway
        self._cache = cache

    # =========================================================================
    # READS WITH FALLBACK
    # =========================================================================

    def fetch_jobs(self, customer_id: Optional[str] = None) -> CachedResult:
        query = self._gateway.table("jobs").select("*").order("created_at", ascending=False)
        if customer_id:
            query = query.eq("customer_uuid", customer_id)
        result = self._fetch("jobs", query)
        if result.is_stale and customer_id:
            return CachedResult.stale(
                [row for row in result.items if row.get("customer_uuid") == customer_id],
                result.cached_at,
                result.error,
            )
        return result

    def fetch_customers(self) -> CachedResult:
        return self._fetch("customers", self._gateway.table("customers").select("*").order("name"))

    def fetch_services(self) -> CachedResult:
        return self._fetch(
            "services",
            self._gateway.table("services").select("*").eq("is_active", True).order("name"),
        )

    def _fetch(self, store: str, query) -> CachedResult:
        try:
            rows = query.execute() or []
        except RemoteCallError as e:
            logger.warning(f"Live read of {store} failed, serving cached rows: {e}")
            return self._cached(store, str(e.message))

        try:
            self._cache.put_many(store, rows)
        except sqlite3.Error as e:
            logger.error(f"Could not mirror {store} into the offline cache: {e}")
        return CachedResult.live(rows)

    def _cached(self, store: str, error: str) -> CachedResult:
        try:
            return CachedResult.stale(self._cache.get_all(store), self._cache.last_cached_at(store), error)
        except sqlite3.Error as e:
            logger.error(f"Offline cache read of {store} failed: {e}")
            return CachedResult.stale([], None, error)

    def get_cached(self, store: str) -> List[Dict[str, Any]]:
        """Mirror contents only, no network. Empty on a cold cache."""
        try:
            return self._cache.get_all(store)
        except sqlite3.Error as e:
            logger.error(f"Offline cache read of {store} failed: {e}")
            return []

    # =========================================================================
    # SYNC
    # =========================================================================

    def sync_all(self) -> Dict[str, bool]:
        """
        Mirror jobs, customers and services.

        Returns:
            Per-store success flags
        """
        return {
            "jobs": not self.fetch_jobs().is_stale,
            "customers": not self.fetch_customers().is_stale,
            "services": not self.fetch_services().is_stale,
        }

    def sync_user_profile(self, user_id: str, profile: Optional[Dict[str, Any]] = None) -> None:
        record = dict(profile or {})
        record.update({"id": user_id, "user_id": user_id, "synced_at": iso_now()})
        try:
            self._cache.put("user_profile", record)
        except sqlite3.Error as e:
            logger.error(f"Could not cache profile for {user_id}: {e}")

    def get_user_profile(self, user_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
        try:
            if user_id:
                return self._cache.get("user_profile", user_id)
            profiles = self._cache.get_all("user_profile")
        except sqlite3.Error as e:
            logger.error(f"Offline cache read of user_profile failed: {e}")
            return None
        return profiles[0] if profiles else None

    # =========================================================================
    # PENDING ACTIONS
    # =========================================================================

    def queue_action(
        self,
        method: str,
        table: str,
        payload: Optional[Dict[str, Any]] = None,
        match: Optional[Dict[str, Any]] = None,
    ) -> int:
        """
        Queue a write for replay.

        Args:
            method: insert, update, upsert or delete
            table: Target table
            payload: Row values (insert/update/upsert)
            match: Equality filters selecting the rows (update/delete)

        Returns:
            Queue id
        """
        if method not in QUEUEABLE_METHODS:
            raise ValueError(f"Cannot queue method: {method}")
        if method in ("update", "delete") and not match:
            raise ValueError(f"Queued {method} needs a match filter")
        action_id = self._cache.add_pending_action({
            "method": method,
            "table": table,
            "payload": payload or {},
            "match": match or {},
        })
        logger.info(f"Queued offline {method} on {table} (#{action_id})")
        return action_id

    def pending_actions(self) -> List[Dict[str, Any]]:
        return self._cache.get_pending_actions()

    def replay_pending_actions(self) -> ReplayReport:
        """
        Apply queued writes oldest first.

        A connectivity failure or platform 5xx stops the pass and keeps the
        action and everything after it queued. A write the platform rejects
        outright (4xx) can never succeed and is dropped with an error log.
        """
        report = ReplayReport()
        actions = self._cache.get_pending_actions()

        for index, action in enumerate(actions):
            try:
                self._apply(action)
            except RemoteCallError as e:
                if e.is_connectivity_error or (e.remote_status or 0) >= 500:
                    logger.warning(f"Replay paused at action #{action['id']}: {e}")
                    report.interrupted = True
                    report.remaining = len(actions) - index
                    return report
                logger.error(f"Dropping rejected offline action #{action['id']}: {e}")
                self._cache.remove_pending_action(action["id"])
                report.dropped += 1
                continue

            self._cache.remove_pending_action(action["id"])
            report.applied += 1

        if report.applied or report.dropped:
            logger.info(f"Replayed {report.applied} offline actions ({report.dropped} dropped)")
        return report

    def _apply(self, action: Dict[str, Any]) -> None:
        query = self._gateway.table(action["table"])
        for column, value in (action.get("match") or {}).items():
            query = query.eq(column, value)

        method = action["method"]
        if method == "insert":
            query.insert(action.get("payload") or {})
        elif method == "upsert":
            query.upsert(action.get("payload") or {})
        elif method == "update":
            query.update(action.get("payload") or {})
        elif method == "delete":
            query.delete()
        else:
            raise RemoteCallError(f"replay:{action['table']}", f"Unknown method {method}", status_code=400)


class SyncService:
    """
    Background mirror refresh and replay worker.

    Runs sync_all() every ``interval_seconds``. After a pass in which the
    platform answered, pending actions are replayed.

    Attributes:
        interval_seconds: Time between passes
        is_running: Whether the background thread is active
    """

    def __init__(self, sync: OfflineSync, interval_seconds: float = 60.0):
        self._sync = sync
        self._interval = interval_seconds

        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._is_running = False

        self._consecutive_failures = 0
        self._last_report: Optional[ReplayReport] = None

        logger.info(f"SyncService initialized (interval: {interval_seconds}s)")

    @property
    def is_running(self) -> bool:
        return self._is_running

    @property
    def interval_seconds(self) -> float:
        return self._interval

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    @property
    def last_report(self) -> Optional[ReplayReport]:
        return self._last_report

    def start(self) -> None:
        """Start the background thread. No-op if already running."""
        if self._is_running:
            logger.warning("SyncService already running")
            return

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run_loop, name="OfflineSync", daemon=True)
        self._is_running = True
        self._thread.start()
        logger.info("Offline sync thread started")

    def stop(self) -> None:
        """Signal the thread and wait for it. Safe to call multiple times."""
        if not self._is_running:
            return

        self._stop_event.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)
            if self._thread.is_alive():
                logger.warning("Offline sync thread did not stop cleanly")

        self._is_running = False
        self._thread = None
        logger.info("Offline sync thread stopped")

    def run_once(self) -> bool:
        """
        One sync pass in the calling thread.

        Returns:
            True if every store synced
        """
        results = self._sync.sync_all()
        online = any(results.values())

        if online:
            self._last_report = self._sync.replay_pending_actions()

        if all(results.values()):
            if self._consecutive_failures > 0:
                logger.info(f"Offline sync recovered after {self._consecutive_failures} failures")
            self._consecutive_failures = 0
            return True

        self._consecutive_failures += 1
        failed = [store for store, ok in results.items() if not ok]
        if self._consecutive_failures == 1:
            logger.warning(f"Offline sync failed for {failed}")
        elif self._consecutive_failures <= 3:
            logger.error(f"Offline sync failed for {failed} ({self._consecutive_failures} consecutive)")
        elif self._consecutive_failures % 5 == 0:
            logger.error(f"Offline sync still failing ({self._consecutive_failures} consecutive)")
        return False

    def _run_loop(self) -> None:
        set_thread_name("OfflineSync")
        logger.info("Offline sync loop starting")

        self._safe_run()
        while not self._stop_event.wait(timeout=self._interval):
            self._safe_run()

        logger.info("Offline sync loop exiting")

    def _safe_run(self) -> None:
        try:
            self.run_once()
        except Exception as e:
            # Keep the thread alive; the next pass retries
            logger.error(f"Offline sync pass crashed: {e}", exc_info=True)
