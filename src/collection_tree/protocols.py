"""Protocols for dependency injection in collection-tree."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class LockProvider(Protocol):
    """Named advisory locks with a bounded wait.

    Callers that bypass the provider are not prevented from writing; the
    lock only orders callers that use it.
    """

    def acquire(self, key: str, *, timeout: float) -> str:
        """Block up to ``timeout`` seconds for ``key``, return an ownership token.

        Raises LockTimeout when the lock could not be taken in time.
        """
        ...

    def release(self, key: str, token: str) -> None:
        """Release ``key`` if it is still owned by ``token``."""
        ...
