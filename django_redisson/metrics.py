"""Prometheus metrics for the command handler and the delay queue.

The metric objects are process-wide and created without a registry. Call
:func:`register_metrics` with a registration callable to expose them, e.g.
``register_metrics(prometheus_client.REGISTRY.register)``. Registering twice
with the same callable is a no-op.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from prometheus_client import Counter, Summary

if TYPE_CHECKING:
    from collections.abc import Callable

    from prometheus_client.registry import Collector

    type RegisterFunc = Callable[[Collector], object]

COMMAND_LABELS = ["command", "s_command"]
QUEUE_LABELS = ["queue"]

# ============================================================================
# Command metrics
# ============================================================================

EXEC_TIMING = Summary(
    "redis_exec_timing",
    "Redis command execution time in seconds",
    COMMAND_LABELS,
    registry=None,
)

EXEC_ERROR = Counter(
    "redis_exec_error",
    "Redis command execution errors",
    COMMAND_LABELS,
    registry=None,
)

CACHE_HITS = Counter(
    "redis_cache_hits",
    "Redis client side cache hits",
    COMMAND_LABELS,
    registry=None,
)

CACHE_MISS = Counter(
    "redis_cache_miss",
    "Redis client side cache misses",
    COMMAND_LABELS,
    registry=None,
)

# ============================================================================
# Delay queue metrics
# ============================================================================

DELAY_POLL_ERROR = Counter(
    "redis_delay_poll_error",
    "Delay queue poll script errors",
    QUEUE_LABELS,
    registry=None,
)

DELAY_RECLAIM_ERROR = Counter(
    "redis_delay_reclaim_error",
    "Delay queue reclaim script errors",
    QUEUE_LABELS,
    registry=None,
)

DELAY_RECLAIM = Counter(
    "redis_delay_reclaim",
    "Payloads moved back from the doing set after their lease expired",
    QUEUE_LABELS,
    registry=None,
)

ALL_METRICS = (
    EXEC_TIMING,
    EXEC_ERROR,
    CACHE_HITS,
    CACHE_MISS,
    DELAY_POLL_ERROR,
    DELAY_RECLAIM_ERROR,
    DELAY_RECLAIM,
)

_lock = threading.Lock()
_registered: list[RegisterFunc] = []


def register_metrics(register: RegisterFunc) -> bool:
    """Register every metric with ``register``, once per callable.

    Returns True if the metrics were registered by this call.
    """
    with _lock:
        if register in _registered:
            return False
        for metric in ALL_METRICS:
            register(metric)
        _registered.append(register)
        return True
