from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from django_redisson.types import EncodableT


class ServerMixin:
    """Server and connection commands."""

    # Type hints for base class attributes
    _execute: Any

    def ping(self) -> bool:
        return self._execute("PING")

    def echo(self, value: EncodableT) -> Any:
        return self._execute("ECHO", value)

    def info(self, *sections: str) -> dict[str, Any]:
        return self._execute("INFO", *sections)

    def dbsize(self) -> int:
        return self._execute("DBSIZE")

    def time(self) -> tuple[int, int]:
        return self._execute("TIME")

    def flushdb(self, asynchronous: bool = False) -> bool:
        return self._execute("FLUSHDB", asynchronous=asynchronous)

    def flushall(self, asynchronous: bool = False) -> bool:
        return self._execute("FLUSHALL", asynchronous=asynchronous)
