"""Advisory lock providers serializing document structure writes."""

from pathlib import Path

from collection_tree.config import LOCK_BACKEND, LOCK_TTL, REDIS_URL
from collection_tree.core.locking.base import LockTimeout, hold
from collection_tree.core.locking.memory import InMemoryLockProvider
from collection_tree.core.locking.redis import RedisLockProvider
from collection_tree.core.locking.sqlite import SqliteLockProvider
from collection_tree.protocols import LockProvider


def build_lock_provider(
    backend: str = LOCK_BACKEND,
    *,
    db_path: str | Path | None = None,
    redis_url: str = REDIS_URL,
    ttl: float = LOCK_TTL,
) -> LockProvider:
    """Create the lock provider named by ``backend``: memory, sqlite or redis."""
    if backend == "memory":
        return InMemoryLockProvider()
    if backend == "sqlite":
        if db_path is None:
            msg = "The sqlite lock backend needs a database path"
            raise ValueError(msg)
        return SqliteLockProvider(db_path, ttl=ttl)
    if backend == "redis":
        return RedisLockProvider.from_url(redis_url, ttl=ttl)
    msg = f"Unknown lock backend {backend!r}, expected memory, sqlite or redis"
    raise ValueError(msg)


__all__ = [
    "InMemoryLockProvider",
    "LockProvider",
    "LockTimeout",
    "RedisLockProvider",
    "SqliteLockProvider",
    "build_lock_provider",
    "hold",
]
