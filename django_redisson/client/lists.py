from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from django_redisson.types import EncodableT, KeyT


class ListMixin:
    """List commands."""

    # Type hints for base class attributes
    _execute: Any

    def lpush(self, key: KeyT, *values: EncodableT) -> int:
        return self._execute("LPUSH", key, *values, keys=[key])

    def rpush(self, key: KeyT, *values: EncodableT) -> int:
        return self._execute("RPUSH", key, *values, keys=[key])

    def lpop(self, key: KeyT, count: int | None = None) -> Any:
        return self._execute("LPOP", key, count, keys=[key])

    def rpop(self, key: KeyT, count: int | None = None) -> Any:
        return self._execute("RPOP", key, count, keys=[key])

    def lrange(self, key: KeyT, start: int, end: int) -> list[Any]:
        return self._execute("LRANGE", key, start, end, keys=[key])

    def llen(self, key: KeyT) -> int:
        return self._execute("LLEN", key, keys=[key])

    def lindex(self, key: KeyT, index: int) -> Any:
        return self._execute("LINDEX", key, index, keys=[key])

    def lrem(self, key: KeyT, count: int, value: EncodableT) -> int:
        return self._execute("LREM", key, count, value, keys=[key])

    def ltrim(self, key: KeyT, start: int, end: int) -> bool:
        return self._execute("LTRIM", key, start, end, keys=[key])
