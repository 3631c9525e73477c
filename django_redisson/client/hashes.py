from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping

    from django_redisson.types import EncodableT, KeyT


class HashMixin:
    """Hash commands."""

    # Type hints for base class attributes
    _execute: Any

    def hset(
        self,
        key: KeyT,
        field: str | bytes | None = None,
        value: EncodableT | None = None,
        mapping: Mapping[str | bytes, EncodableT] | None = None,
    ) -> int:
        return self._execute("HSET", key, field, value, mapping=mapping, keys=[key])

    def hmset(self, key: KeyT, mapping: Mapping[str | bytes, EncodableT]) -> bool:
        return self._execute("HMSET", key, mapping, keys=[key])

    def hget(self, key: KeyT, field: str | bytes) -> Any:
        return self._execute("HGET", key, field, keys=[key])

    def hmget(self, key: KeyT, *fields: str | bytes) -> list[Any]:
        return self._execute("HMGET", key, list(fields), keys=[key])

    def hgetall(self, key: KeyT) -> dict[Any, Any]:
        return self._execute("HGETALL", key, keys=[key])

    def hdel(self, key: KeyT, *fields: str | bytes) -> int:
        return self._execute("HDEL", key, *fields, keys=[key])

    def hexists(self, key: KeyT, field: str | bytes) -> bool:
        return self._execute("HEXISTS", key, field, keys=[key])

    def hincrby(self, key: KeyT, field: str | bytes, amount: int = 1) -> int:
        return self._execute("HINCRBY", key, field, amount, keys=[key])

    def hkeys(self, key: KeyT) -> list[Any]:
        return self._execute("HKEYS", key, keys=[key])

    def hvals(self, key: KeyT) -> list[Any]:
        return self._execute("HVALS", key, keys=[key])

    def hlen(self, key: KeyT) -> int:
        return self._execute("HLEN", key, keys=[key])
