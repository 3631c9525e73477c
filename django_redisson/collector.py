"""Scrape-time collector for delay queue lengths.

One :class:`DelayQueueCollector` exists per registration callable, so any
number of clients can report into the same registry::

    get_redis_client("default").register_collector(REGISTRY.register)
    get_redis_client("other").register_collector(REGISTRY.register)
"""

from __future__ import annotations

import logging
import threading
import weakref
from typing import TYPE_CHECKING

from prometheus_client.core import GaugeMetricFamily
from prometheus_client.registry import Collector

if TYPE_CHECKING:
    from collections.abc import Iterator

    from django_redisson.client.base import BaseClient
    from django_redisson.metrics import RegisterFunc

logger = logging.getLogger(__name__)

QUEUE_LENGTH = "redis_delay_queue_length"


def _family() -> GaugeMetricFamily:
    return GaugeMetricFamily(QUEUE_LENGTH, "Delay queue length", labels=["queue"])


class DelayQueueCollector(Collector):
    """Reports ``redis_delay_queue_length`` for every open queue of its clients.

    Lengths are read from Redis when the registry is scraped. A queue whose
    length cannot be read is left out of that scrape. Clients are held weakly
    and a queue name is reported once even when several clients have it open.
    """

    def __init__(self) -> None:
        self._clients: weakref.WeakSet[BaseClient] = weakref.WeakSet()
        self._lock = threading.Lock()

    def add(self, client: BaseClient) -> None:
        with self._lock:
            self._clients.add(client)

    def clients(self) -> list[BaseClient]:
        with self._lock:
            return list(self._clients)

    def describe(self) -> list:
        return [_family()]

    def collect(self) -> Iterator[GaugeMetricFamily]:
        family = _family()
        seen: set[str] = set()
        for client in self.clients():
            for queue in client.delay_queues():
                if queue.name in seen:
                    continue
                try:
                    length = queue.length()
                except Exception as e:  # noqa: BLE001
                    logger.warning("Failed to read length of delay queue %s: %s", queue.name, e)
                    continue
                seen.add(queue.name)
                family.add_metric([queue.name], length)
        yield family


_lock = threading.Lock()
_collectors: list[tuple[RegisterFunc, DelayQueueCollector]] = []


def register_client(register: RegisterFunc, client: BaseClient) -> DelayQueueCollector:
    """Report ``client``'s queues through the collector registered with ``register``.

    The collector is created and registered on the first call for a given
    callable; later calls only add the client to it.
    """
    with _lock:
        for known, collector in _collectors:
            if known == register:
                break
        else:
            collector = DelayQueueCollector()
            register(collector)
            _collectors.append((register, collector))
    collector.add(client)
    return collector
