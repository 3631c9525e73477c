"""Client configuration record.

``Conf`` is immutable once built. The connection negotiator derives adjusted
copies with :meth:`Conf.replace`; the effective copy is what ``Client.options``
returns after a successful connect.

Example::

    REDISSON = {
        "default": {
            "ADDRS": ["127.0.0.1:6379"],
            "DB": 1,
            "DEVELOPMENT": True,
        },
    }
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

DEFAULT_ADDR = "127.0.0.1:6379"
DEFAULT_CACHE_SIZE = 1000
DEFAULT_MOCK_VERSION = "7.2.0"

_NETWORKS = frozenset({"tcp", "unix"})
_LIBRARIES = frozenset({"redis", "valkey"})


@dataclass(frozen=True)
class Conf:
    """Dial and tuning options for a :class:`~django_redisson.client.Client`."""

    addrs: tuple[str, ...] = (DEFAULT_ADDR,)
    net: str = "tcp"
    library: str = "redis"
    always_resp2: bool = False
    username: str = ""
    password: str = ""
    db: int = 0
    name: str = ""
    master_name: str = ""
    cluster: bool = False
    enable_cache: bool = True
    cache_size_each_conn: int = 0
    ring_scale_each_conn: int = 0
    conn_pool_size: int = 0
    read_timeout: float | None = None
    write_timeout: float | None = 10.0
    dial_timeout: float | None = None
    decode_responses: bool = False
    development: bool = True
    enable_monitor: bool = True
    force_single_client: bool = False
    mock: bool = False
    mock_version: str = DEFAULT_MOCK_VERSION
    silent_error: Callable[[BaseException], bool] | str | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        # Accept a single address or any iterable, store a tuple
        addrs = self.addrs
        if isinstance(addrs, str):
            addrs = (addrs,)
        object.__setattr__(self, "addrs", tuple(addrs))

        if not self.addrs:
            msg = "addrs must contain at least one address"
            raise ValueError(msg)
        if self.net not in _NETWORKS:
            msg = f"net must be one of {sorted(_NETWORKS)}, got {self.net!r}"
            raise ValueError(msg)
        if self.library not in _LIBRARIES:
            msg = f"library must be one of {sorted(_LIBRARIES)}, got {self.library!r}"
            raise ValueError(msg)

    @property
    def resp(self) -> int:
        """The protocol version the client negotiates (2 or 3)."""
        return 2 if self.always_resp2 else 3

    @property
    def cache_size(self) -> int:
        """Maximum client side cache entries; ``cache_size_each_conn`` or the default."""
        return self.cache_size_each_conn or DEFAULT_CACHE_SIZE

    def replace(self, **changes: Any) -> Conf:
        """Return a copy with ``changes`` applied."""
        return dataclasses.replace(self, **changes)

    @classmethod
    def from_dict(cls, options: Mapping[str, Any]) -> Conf:
        """Build a ``Conf`` from a settings mapping.

        Keys are matched case-insensitively so both ``"DB"`` and ``"db"`` work.
        Unknown keys raise ``TypeError``.
        """
        names = {f.name for f in dataclasses.fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in options.items():
            name = key.lower()
            if name not in names:
                msg = f"Unknown redisson option: {key!r}"
                raise TypeError(msg)
            kwargs[name] = value
        return cls(**kwargs)
