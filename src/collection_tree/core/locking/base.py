"""Lock errors and the acquire/release context manager."""

from collections.abc import Iterator
from contextlib import contextmanager

from loguru import logger

from collection_tree.protocols import LockProvider


class LockTimeout(RuntimeError):
    """The lock was not acquired within the allowed wait. Safe to retry."""

    retryable = True

    def __init__(self, key: str, timeout: float) -> None:
        super().__init__(f"Timed out after {timeout:g}s waiting for lock {key!r}")
        self.key = key
        self.timeout = timeout


@contextmanager
def hold(provider: LockProvider, key: str, *, timeout: float) -> Iterator[str]:
    """Hold ``key`` for the duration of the block, releasing it on any exit."""
    token = provider.acquire(key, timeout=timeout)
    logger.debug("Acquired lock {}", key)
    try:
        yield token
    except BaseException:
        # Keep the original error if releasing fails as well.
        try:
            provider.release(key, token)
        except Exception:
            logger.exception("Failed to release lock {}", key)
        raise
    provider.release(key, token)
    logger.debug("Released lock {}", key)
