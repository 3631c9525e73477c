"""Distributed locks.

A thin layer over the driver's ``lock()`` primitive that fixes a key prefix
and default lease::

    locker = client.new_locker()
    with locker.locked("invoice:42"):
        ...
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from django_redisson.exceptions import LockNotAcquiredError
from django_redisson.types import to_seconds

if TYPE_CHECKING:
    from collections.abc import Iterator

    from django_redisson.client.base import BaseClient
    from django_redisson.types import ExpiryT


@dataclass(frozen=True)
class LockerOptions:
    """Options of a :class:`Locker`.

    Attributes:
        key_prefix: Prefix of every lock key.
        key_validity: Lease of a held lock in seconds.
        try_next_after: Seconds to wait between two acquire attempts.
    """

    key_prefix: str = "redislock"
    key_validity: float = 5.0
    try_next_after: float = 0.02


class Locker:
    def __init__(self, client: BaseClient, options: LockerOptions | None = None) -> None:
        self._client = client
        self.options = options or LockerOptions()

    def key(self, name: str) -> str:
        return f"{self.options.key_prefix}:{name}"

    def new_lock(self, name: str, timeout: ExpiryT | None = None) -> Any:
        """Driver lock for ``name``, not yet acquired."""
        validity = self.options.key_validity if timeout is None else to_seconds(timeout)
        return self._client.driver.lock(
            self.key(name),
            timeout=validity,
            sleep=self.options.try_next_after,
        )

    def lock(self, name: str, blocking_timeout: float | None = None) -> Any:
        """Acquire the lock for ``name``, waiting for it.

        Returns the acquired driver lock; call ``release()`` when done.

        Raises:
            LockNotAcquiredError: ``blocking_timeout`` elapsed first.
        """
        lock = self.new_lock(name)
        if not lock.acquire(blocking=True, blocking_timeout=blocking_timeout):
            raise LockNotAcquiredError(self.key(name))
        return lock

    def try_lock(self, name: str) -> Any | None:
        """Acquire the lock for ``name`` without waiting; None if it is held."""
        lock = self.new_lock(name)
        if lock.acquire(blocking=False):
            return lock
        return None

    @contextmanager
    def locked(self, name: str, blocking_timeout: float | None = None) -> Iterator[Any]:
        """Hold the lock for ``name`` for the duration of the block."""
        lock = self.lock(name, blocking_timeout=blocking_timeout)
        try:
            yield lock
        finally:
            lock.release()
