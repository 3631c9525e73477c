from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping

    from django_redisson.types import EncodableT, KeyT


class SortedSetMixin:
    """Sorted set commands."""

    # Type hints for base class attributes
    _execute: Any

    def zadd(
        self,
        key: KeyT,
        mapping: Mapping[EncodableT, float],
        nx: bool = False,
        xx: bool = False,
        ch: bool = False,
        incr: bool = False,
    ) -> Any:
        return self._execute("ZADD", key, mapping, nx=nx, xx=xx, ch=ch, incr=incr, keys=[key])

    def zrem(self, key: KeyT, *members: EncodableT) -> int:
        return self._execute("ZREM", key, *members, keys=[key])

    def zscore(self, key: KeyT, member: EncodableT) -> float | None:
        return self._execute("ZSCORE", key, member, keys=[key])

    def zcard(self, key: KeyT) -> int:
        return self._execute("ZCARD", key, keys=[key])

    def zcount(self, key: KeyT, min: float | str, max: float | str) -> int:  # noqa: A002
        return self._execute("ZCOUNT", key, min, max, keys=[key])

    def zincrby(self, key: KeyT, amount: float, member: EncodableT) -> float:
        return self._execute("ZINCRBY", key, amount, member, keys=[key])

    def zrank(self, key: KeyT, member: EncodableT) -> int | None:
        return self._execute("ZRANK", key, member, keys=[key])

    def zrange(
        self,
        key: KeyT,
        start: int | float | str,
        end: int | float | str,
        desc: bool = False,
        withscores: bool = False,
        byscore: bool = False,
    ) -> list[Any]:
        return self._execute(
            "ZRANGE",
            key,
            start,
            end,
            desc=desc,
            withscores=withscores,
            byscore=byscore,
            keys=[key],
        )

    def zrangebyscore(
        self,
        key: KeyT,
        min: float | str,  # noqa: A002
        max: float | str,  # noqa: A002
        start: int | None = None,
        num: int | None = None,
        withscores: bool = False,
    ) -> list[Any]:
        return self._execute("ZRANGEBYSCORE", key, min, max, start, num, withscores=withscores, keys=[key])
