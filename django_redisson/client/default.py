"""The concrete client class.

Architecture:
- BaseClient: execution bracket, cached views, fan-out, delay queue registry
- Family mixins: one thin adapter per Redis command
- Client: combines them and adds the queue, funnel, lock and metrics helpers

Obtain a connected client with :meth:`Client.connect`, or through Django
settings with :func:`django_redisson.get_redis_client`.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from django_redisson.client.base import BaseClient
from django_redisson.client.geo import GeoMixin
from django_redisson.client.hashes import HashMixin
from django_redisson.client.keys import KeyMixin
from django_redisson.client.lists import ListMixin
from django_redisson.client.pipeline import PipelineMixin
from django_redisson.client.pubsub import PubSubMixin
from django_redisson.client.scripting import ScriptingMixin
from django_redisson.client.server import ServerMixin
from django_redisson.client.sets import SetMixin
from django_redisson.client.sorted_sets import SortedSetMixin
from django_redisson.client.strings import StringMixin
from django_redisson.collector import register_client
from django_redisson.delay import DelayOptions, DelayQueue
from django_redisson.funnel import Funnel
from django_redisson.locker import Locker, LockerOptions
from django_redisson.metrics import register_metrics

if TYPE_CHECKING:
    from collections.abc import Callable

    from django_redisson.conf import Conf
    from django_redisson.metrics import RegisterFunc
    from django_redisson.types import ExpiryT, KeyT

logger = logging.getLogger(__name__)


class Client(
    StringMixin,
    KeyMixin,
    HashMixin,
    ListMixin,
    SetMixin,
    SortedSetMixin,
    GeoMixin,
    ServerMixin,
    ScriptingMixin,
    PubSubMixin,
    PipelineMixin,
    BaseClient,
):
    """A connected Redis client with development checks and metrics."""

    def __repr__(self) -> str:
        return f"<Client version={self.version} cluster={self.is_cluster} cache_ttl={self.cache_ttl}>"

    @classmethod
    def connect(cls, conf: Conf) -> Client:
        """Connect and negotiate capabilities; see :func:`django_redisson.connect.connect`."""
        from django_redisson.connect import connect

        return connect(conf)

    # =========================================================================
    # Delay queues
    # =========================================================================

    def new_delay_queue(
        self,
        name: str,
        callback: Callable[[Any], Any],
        *,
        prefix: str = "",
        timeout: ExpiryT = 60.0,
        retry_times: int = 3,
        dead_letter: Callable[[Any], Any] | str | None = None,
        interval: float = 1.0,
    ) -> DelayQueue:
        """Open the delay queue ``name``, or return it if it is already open.

        The first open queue of a name wins; later calls get it back with its
        original callback and options.
        """
        if name:
            with self._registry_lock:
                existing = self._delay_queues.get(name)
            if existing is not None:
                return existing

        options = DelayOptions(
            prefix=prefix,
            timeout=timeout,
            retry_times=retry_times,
            interval=interval,
            **({"dead_letter": dead_letter} if dead_letter is not None else {}),
        )
        queue = DelayQueue(self, name, callback, options)
        winner = self._register_delay_queue(queue)
        if winner is queue:
            queue.start()
        return winner

    # =========================================================================
    # Rate limiting and locks
    # =========================================================================

    def new_funnel(self, key: KeyT, capacity: int, operations: int, seconds: ExpiryT) -> Funnel:
        """Leaky bucket holding ``capacity`` units, leaking ``operations`` per ``seconds``."""
        return Funnel(self, key, capacity, operations, seconds)

    def new_locker(
        self,
        key_prefix: str = "redislock",
        key_validity: float = 5.0,
        try_next_after: float = 0.02,
    ) -> Locker:
        return Locker(self, LockerOptions(key_prefix, key_validity, try_next_after))

    # =========================================================================
    # Metrics
    # =========================================================================

    def register_collector(self, register: RegisterFunc) -> None:
        """Register the command metrics and report this client's queue lengths.

        Safe to call from several clients with the same ``register``: the
        metrics and the queue length collector are registered once.
        """
        register_metrics(register)
        register_client(register, self)
