from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping

    from django_redisson.types import EncodableT, ExpiryT, KeyT


class StringMixin:
    """String commands."""

    # Type hints for base class attributes
    _execute: Any

    def get(self, key: KeyT) -> Any:
        return self._execute("GET", key, keys=[key])

    def set(
        self,
        key: KeyT,
        value: EncodableT,
        ex: ExpiryT | None = None,
        px: ExpiryT | None = None,
        nx: bool = False,
        xx: bool = False,
        keepttl: bool = False,
        get: bool = False,
    ) -> Any:
        return self._execute("SET", key, value, ex=ex, px=px, nx=nx, xx=xx, keepttl=keepttl, get=get, keys=[key])

    def setex(self, key: KeyT, seconds: ExpiryT, value: EncodableT) -> bool:
        return self._execute("SETEX", key, seconds, value, keys=[key])

    def psetex(self, key: KeyT, milliseconds: ExpiryT, value: EncodableT) -> bool:
        return self._execute("PSETEX", key, milliseconds, value, keys=[key])

    def setnx(self, key: KeyT, value: EncodableT) -> bool:
        return self._execute("SETNX", key, value, keys=[key])

    def getdel(self, key: KeyT) -> Any:
        return self._execute("GETDEL", key, keys=[key])

    def getex(self, key: KeyT, ex: ExpiryT | None = None, px: ExpiryT | None = None, persist: bool = False) -> Any:
        return self._execute("GETEX", key, ex=ex, px=px, persist=persist, keys=[key])

    def getrange(self, key: KeyT, start: int, end: int) -> Any:
        return self._execute("GETRANGE", key, start, end, keys=[key])

    def mget(self, *keys: KeyT) -> list[Any]:
        return self._execute("MGET", list(keys), keys=keys)

    def mset(self, mapping: Mapping[KeyT, EncodableT]) -> bool:
        return self._execute("MSET", mapping, keys=lambda: list(mapping))

    def incr(self, key: KeyT, amount: int = 1) -> int:
        return self._execute("INCR", key, amount, keys=[key])

    def incrby(self, key: KeyT, amount: int = 1) -> int:
        return self._execute("INCRBY", key, amount, keys=[key])

    def incrbyfloat(self, key: KeyT, amount: float = 1.0) -> float:
        return self._execute("INCRBYFLOAT", key, amount, keys=[key])

    def decr(self, key: KeyT, amount: int = 1) -> int:
        return self._execute("DECR", key, amount, keys=[key])

    def decrby(self, key: KeyT, amount: int = 1) -> int:
        return self._execute("DECRBY", key, amount, keys=[key])

    def append(self, key: KeyT, value: EncodableT) -> int:
        return self._execute("APPEND", key, value, keys=[key])

    def strlen(self, key: KeyT) -> int:
        return self._execute("STRLEN", key, keys=[key])
