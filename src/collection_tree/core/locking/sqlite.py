"""Cross-process lock provider backed by a row per key in SQLite."""

import sqlite3
import time
import uuid
from contextlib import closing
from pathlib import Path

from loguru import logger

from collection_tree.config import LOCK_POLL_INTERVAL, LOCK_TTL
from collection_tree.core.database.schema import migrate_schema
from collection_tree.core.locking.base import LockTimeout


class SqliteLockProvider:
    """Advisory locks shared by every process that opens the same database file.

    A held lock is a row in ``locks``. Rows carry an expiry so that a lock
    left behind by a crashed process is reclaimed after ``ttl`` seconds.
    """

    def __init__(
        self,
        db_path: str | Path,
        *,
        ttl: float = LOCK_TTL,
        poll_interval: float = LOCK_POLL_INTERVAL,
    ) -> None:
        self.db_path = str(db_path)
        self.ttl = ttl
        self.poll_interval = poll_interval
        with closing(self._connect()) as conn:
            migrate_schema(conn)

    def _connect(self, busy_timeout: float = 5.0) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path, timeout=busy_timeout, isolation_level=None)

    def _try_acquire(self, key: str, token: str) -> bool:
        with closing(self._connect(self.poll_interval)) as conn:
            try:
                conn.execute("BEGIN IMMEDIATE")
            except sqlite3.OperationalError:
                # Another connection holds the write lock; try again on the next poll.
                return False
            try:
                now = time.time()
                conn.execute("DELETE FROM locks WHERE key = ? AND expires_at <= ?", (key, now))
                cursor = conn.execute(
                    "INSERT OR IGNORE INTO locks (key, token, expires_at) VALUES (?, ?, ?)",
                    (key, token, now + self.ttl),
                )
                conn.execute("COMMIT")
            except Exception:
                conn.execute("ROLLBACK")
                raise
            return cursor.rowcount == 1

    def acquire(self, key: str, *, timeout: float) -> str:
        token = uuid.uuid4().hex
        deadline = time.monotonic() + timeout
        while not self._try_acquire(key, token):
            if time.monotonic() >= deadline:
                raise LockTimeout(key, timeout)
            time.sleep(self.poll_interval)
        return token

    def release(self, key: str, token: str) -> None:
        with closing(self._connect()) as conn:
            cursor = conn.execute("DELETE FROM locks WHERE key = ? AND token = ?", (key, token))
        if cursor.rowcount == 0:
            logger.warning("Lock {} expired before it was released", key)
