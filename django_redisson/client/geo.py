from __future__ import annotations

from typing import TYPE_CHECKING, Any, NamedTuple

if TYPE_CHECKING:
    from collections.abc import Iterable

    from django_redisson.types import EncodableT, KeyT


class GeoLocation(NamedTuple):
    """A member with its coordinates, as accepted by ``GEOADD``."""

    name: EncodableT
    longitude: float
    latitude: float


class GeoMixin:
    """Geospatial commands."""

    # Type hints for base class attributes
    _execute: Any

    def geoadd(
        self,
        key: KeyT,
        *locations: GeoLocation,
        nx: bool = False,
        xx: bool = False,
        ch: bool = False,
    ) -> int:
        return self._execute("GEOADD", key, _flatten(locations), nx=nx, xx=xx, ch=ch, keys=[key])

    def geodist(self, key: KeyT, member1: EncodableT, member2: EncodableT, unit: str | None = None) -> float | None:
        return self._execute("GEODIST", key, member1, member2, unit=unit, keys=[key])

    def geopos(self, key: KeyT, *members: EncodableT) -> list[tuple[float, float] | None]:
        return self._execute("GEOPOS", key, *members, keys=[key])

    def geohash(self, key: KeyT, *members: EncodableT) -> list[Any]:
        return self._execute("GEOHASH", key, *members, keys=[key])

    def georadius(
        self,
        key: KeyT,
        longitude: float,
        latitude: float,
        radius: float,
        unit: str | None = None,
        **options: Any,
    ) -> list[Any]:
        return self._execute("GEORADIUS", key, longitude, latitude, radius, unit=unit, keys=[key], **options)

    def georadiusbymember(
        self,
        key: KeyT,
        member: EncodableT,
        radius: float,
        unit: str | None = None,
        **options: Any,
    ) -> list[Any]:
        return self._execute("GEORADIUSBYMEMBER", key, member, radius, unit=unit, keys=[key], **options)

    def geosearch(self, key: KeyT, **options: Any) -> list[Any]:
        return self._execute("GEOSEARCH", key, keys=[key], **options)


def _flatten(locations: Iterable[GeoLocation]) -> list[Any]:
    values: list[Any] = []
    for location in locations:
        values.extend((location.longitude, location.latitude, location.name))
    return values
