from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterator

    from django_redisson.types import AbsExpiryT, ExpiryT, KeyT


class KeyMixin:
    """Generic keyspace commands."""

    # Type hints for base class attributes
    _execute: Any

    def delete(self, *keys: KeyT) -> int:
        return self._execute("DEL", *keys, keys=keys)

    def unlink(self, *keys: KeyT) -> int:
        return self._execute("UNLINK", *keys, keys=keys)

    def exists(self, *keys: KeyT) -> int:
        return self._execute("EXISTS", *keys, keys=keys)

    def touch(self, *keys: KeyT) -> int:
        return self._execute("TOUCH", *keys, keys=keys)

    def expire(self, key: KeyT, seconds: ExpiryT) -> bool:
        return self._execute("EXPIRE", key, seconds, keys=[key])

    def pexpire(self, key: KeyT, milliseconds: ExpiryT) -> bool:
        return self._execute("PEXPIRE", key, milliseconds, keys=[key])

    def expireat(self, key: KeyT, when: AbsExpiryT) -> bool:
        return self._execute("EXPIREAT", key, when, keys=[key])

    def persist(self, key: KeyT) -> bool:
        return self._execute("PERSIST", key, keys=[key])

    def ttl(self, key: KeyT) -> int:
        return self._execute("TTL", key, keys=[key])

    def pttl(self, key: KeyT) -> int:
        return self._execute("PTTL", key, keys=[key])

    def type(self, key: KeyT) -> Any:
        return self._execute("TYPE", key, keys=[key])

    def rename(self, src: KeyT, dst: KeyT) -> bool:
        return self._execute("RENAME", src, dst, keys=[src, dst])

    def keys(self, pattern: str = "*") -> list[Any]:
        """``KEYS`` blocks the server; development mode forbids it, use :meth:`scan_iter`."""
        return self._execute("KEYS", pattern)

    def scan(self, cursor: int = 0, match: str | None = None, count: int | None = None) -> tuple[int, list[Any]]:
        return self._execute("SCAN", cursor, match=match, count=count)

    def scan_iter(self, match: str | None = None, count: int | None = None) -> Iterator[Any]:
        """Iterate over the keyspace with repeated ``SCAN`` calls."""
        cursor = None
        while cursor != 0:
            cursor, keys = self.scan(cursor or 0, match=match, count=count)
            yield from keys
