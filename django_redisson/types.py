"""Type aliases for django-redisson.

Compatible with redis-py and valkey-py type systems, defined locally
to avoid a runtime dependency on either library for type annotations.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import StrEnum

# Key types - matches redis.typing.KeyT
type KeyT = bytes | str | memoryview

# Values accepted by the driver - matches redis.typing.EncodableT
type EncodableT = bytes | memoryview | str | int | float

# Expiry types (relative timeout) - matches redis.typing.ExpiryT
type ExpiryT = int | float | timedelta

# Absolute expiry types - matches redis.typing.AbsExpiryT
type AbsExpiryT = int | datetime


class KeyType(StrEnum):
    """Redis key data types, as returned by ``TYPE``."""

    NONE = "none"
    STRING = "string"
    LIST = "list"
    SET = "set"
    HASH = "hash"
    ZSET = "zset"
    STREAM = "stream"


def to_seconds(value: ExpiryT) -> float:
    """Convert a relative expiry to seconds."""
    if isinstance(value, timedelta):
        return value.total_seconds()
    return float(value)
