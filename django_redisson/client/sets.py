from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from django_redisson.types import EncodableT, KeyT

# Alias builtin set type to avoid shadowing by the set() method
_Set = set


class SetMixin:
    """Set commands."""

    # Type hints for base class attributes
    _execute: Any

    def sadd(self, key: KeyT, *members: EncodableT) -> int:
        return self._execute("SADD", key, *members, keys=[key])

    def srem(self, key: KeyT, *members: EncodableT) -> int:
        return self._execute("SREM", key, *members, keys=[key])

    def smembers(self, key: KeyT) -> _Set[Any]:
        return self._execute("SMEMBERS", key, keys=[key])

    def sismember(self, key: KeyT, member: EncodableT) -> bool:
        return bool(self._execute("SISMEMBER", key, member, keys=[key]))

    def scard(self, key: KeyT) -> int:
        return self._execute("SCARD", key, keys=[key])

    def sinter(self, *keys: KeyT) -> _Set[Any]:
        return self._execute("SINTER", list(keys), keys=keys)

    def sunion(self, *keys: KeyT) -> _Set[Any]:
        return self._execute("SUNION", list(keys), keys=keys)

    def sdiff(self, *keys: KeyT) -> _Set[Any]:
        return self._execute("SDIFF", list(keys), keys=keys)
