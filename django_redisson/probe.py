"""Server version and topology probe.

The negotiator asks the server for ``INFO cluster server`` and reads two
fields from it: ``redis_version`` and ``cluster_enabled``.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any, NamedTuple

from django_redisson.exceptions import VersionParseError, _ResponseError

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)

_VERSION_RE = re.compile(r"^\s*v?(\d+)\.(\d+)(?:\.(\d+))?")


class Version(NamedTuple):
    """A ``(major, minor, patch)`` server version, ordered like a tuple."""

    major: int
    minor: int
    patch: int = 0

    @classmethod
    def parse(cls, text: str | bytes) -> Version:
        """Parse ``"7.2.4"``, ``"6.0"`` or ``"6.0.0-rc1"``.

        Raises:
            VersionParseError: if ``text`` does not start with a version.
        """
        if isinstance(text, bytes):
            text = text.decode()
        match = _VERSION_RE.match(str(text))
        if match is None:
            msg = f"invalid redis version: {text!r}"
            raise VersionParseError(msg)
        major, minor, patch = match.groups()
        return cls(int(major), int(minor), int(patch or 0))

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


class ServerInfo(NamedTuple):
    """What the probe learned about the server."""

    version: Version
    cluster: bool

    @classmethod
    def parse(cls, text: str | bytes) -> ServerInfo:
        """Read the raw ``INFO`` reply text."""
        if isinstance(text, bytes):
            text = text.decode()
        fields: dict[str, str] = {}
        for raw in text.splitlines():
            line = raw.strip()
            if not line or line.startswith("#") or ":" not in line:
                continue
            key, _, value = line.partition(":")
            fields[key] = value
        return cls.from_info(fields)

    @classmethod
    def from_info(cls, info: Mapping[str, Any]) -> ServerInfo:
        """Read a parsed ``INFO`` mapping, as returned by ``Redis.info()``."""
        raw_version = info.get("redis_version")
        if raw_version is None or raw_version == "":
            msg = "INFO reply has no redis_version field"
            raise VersionParseError(msg)
        return cls(Version.parse(str(raw_version)), _to_flag(info.get("cluster_enabled")))


def _to_flag(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, bytes):
        value = value.decode()
    value = str(value).strip()
    if not value:
        return False
    return value != "0"


def _is_cluster_driver(driver: Any) -> bool:
    return hasattr(driver, "get_default_node")


def _info(driver: Any, *sections: str) -> Mapping[str, Any]:
    if _is_cluster_driver(driver):
        return driver.info(*sections, target_nodes=driver.__class__.DEFAULT_NODE)
    return driver.info(*sections)


def probe(driver: Any) -> ServerInfo:
    """Ask ``driver`` for its server version and cluster flag.

    Servers older than 7.0 reject multiple sections in one ``INFO`` call; in
    that case both sections are requested separately.
    """
    try:
        info = dict(_info(driver, "cluster", "server"))
    except _ResponseError as e:
        logger.debug("INFO with multiple sections rejected, falling back: %s", e)
        info = dict(_info(driver, "cluster"))
        info.update(_info(driver, "server"))
    return ServerInfo.from_info(info)
