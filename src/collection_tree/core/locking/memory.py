"""In-process lock provider for single-process deployments and tests."""

import threading
import uuid

from loguru import logger

from collection_tree.core.locking.base import LockTimeout


class InMemoryLockProvider:
    """One ``threading.Lock`` per key.

    A key's lock is created on first use and dropped again once it is
    released with nobody waiting, so only keys in use are kept.
    """

    def __init__(self) -> None:
        self._locks: dict[str, threading.Lock] = {}
        self._waiters: dict[str, int] = {}
        self._owners: dict[str, str] = {}
        self._guard = threading.Lock()

    def _discard_if_idle(self, key: str) -> None:
        if self._waiters.get(key) == 0 and key not in self._owners:
            del self._waiters[key]
            del self._locks[key]

    def acquire(self, key: str, *, timeout: float) -> str:
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
            self._waiters[key] = self._waiters.get(key, 0) + 1

        acquired = lock.acquire(timeout=max(timeout, 0))

        with self._guard:
            self._waiters[key] -= 1
            if not acquired:
                self._discard_if_idle(key)
                raise LockTimeout(key, timeout)
            token = uuid.uuid4().hex
            self._owners[key] = token
        return token

    def release(self, key: str, token: str) -> None:
        with self._guard:
            if self._owners.get(key) != token:
                logger.warning("Lock {} is not held by this caller, not releasing", key)
                return
            del self._owners[key]
            self._locks[key].release()
            self._discard_if_idle(key)
