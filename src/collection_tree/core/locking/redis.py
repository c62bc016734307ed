"""Distributed lock provider on Redis (SET NX PX + compare-and-delete)."""

import time
import uuid

import redis
from loguru import logger

from collection_tree.config import LOCK_POLL_INTERVAL, LOCK_TTL
from collection_tree.core.locking.base import LockTimeout

# Delete the key only if it still holds our token, so a lock that expired
# and was taken by another process is left alone.
_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class RedisLockProvider:
    """Advisory locks shared by every process talking to the same Redis."""

    def __init__(
        self,
        client: redis.Redis,
        *,
        prefix: str = "collection-tree:lock:",
        ttl: float = LOCK_TTL,
        poll_interval: float = LOCK_POLL_INTERVAL,
    ) -> None:
        self.client = client
        self.prefix = prefix
        self.ttl = ttl
        self.poll_interval = poll_interval

    @classmethod
    def from_url(cls, url: str, **kwargs: float | str) -> "RedisLockProvider":
        client = redis.Redis.from_url(url, socket_timeout=5, socket_connect_timeout=5)
        return cls(client, **kwargs)  # type: ignore[arg-type]

    def _name(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def acquire(self, key: str, *, timeout: float) -> str:
        token = uuid.uuid4().hex
        deadline = time.monotonic() + timeout
        while not self.client.set(self._name(key), token, nx=True, px=int(self.ttl * 1000)):
            if time.monotonic() >= deadline:
                raise LockTimeout(key, timeout)
            time.sleep(self.poll_interval)
        return token

    def release(self, key: str, token: str) -> None:
        released = self.client.eval(_RELEASE_SCRIPT, 1, self._name(key), token)
        if not released:
            logger.warning("Lock {} expired before it was released", key)
