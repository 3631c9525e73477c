"""Core of the client: command execution, the cached view and fan-out helpers.

Every façade method ends in :meth:`BaseClient._execute`, which brackets the
driver call with the handler's ``before``/``after`` and, on a cached view,
serves read-only commands from the per-client local cache.
"""

from __future__ import annotations

import copy
import hashlib
import logging
import threading
import uuid
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from django.core.cache.backends import locmem

from django_redisson.commands import get_command
from django_redisson.exceptions import Errors
from django_redisson.handler import keys_slot, with_skip_check

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from django_redisson.commands import Command
    from django_redisson.conf import Conf
    from django_redisson.delay import DelayQueue
    from django_redisson.handler import CommandContext, Handler, KeysArg
    from django_redisson.probe import Version
    from django_redisson.types import KeyT

logger = logging.getLogger(__name__)

# Sentinel to distinguish "not in the local cache" from a cached None
_CACHE_MISS = object()


class BaseClient:
    """State shared by the client and every view derived from it.

    Views returned by :meth:`cache` share the driver, the handler, the local
    cache and the delay queue registry; only the TTL differs.
    """

    def __init__(
        self,
        driver: Any,
        conf: Conf,
        handler: Handler,
        adjustments: Sequence[str] = (),
    ) -> None:
        self._driver = driver
        self._conf = conf
        self._handler = handler
        self._adjustments = list(adjustments)
        self._ttl = 0.0

        self._local: locmem.LocMemCache | None = None
        # Locmem stores are process-global and keyed by name, so every client
        # needs a name no other client can ever reuse
        self._local_name = f"django-redisson-{uuid.uuid4().hex}"
        if conf.enable_cache:
            self._local = locmem.LocMemCache(
                self._local_name,
                {"TIMEOUT": None, "OPTIONS": {"MAX_ENTRIES": conf.cache_size}},
            )

        self._delay_queues: dict[str, DelayQueue] = {}
        self._registry_lock = threading.Lock()

    # =========================================================================
    # Introspection
    # =========================================================================

    @property
    def driver(self) -> Any:
        """The underlying redis-py (or valkey-py, or fakeredis) client."""
        return self._driver

    @property
    def handler(self) -> Handler:
        return self._handler

    @property
    def options(self) -> Conf:
        """The effective configuration after connect negotiation."""
        return self._conf

    @property
    def adjustments(self) -> list[str]:
        """Reconnect rules applied while connecting, in order."""
        return list(self._adjustments)

    @property
    def version(self) -> Version | None:
        """Server version learned by the probe."""
        return self._handler.version

    @property
    def is_cluster(self) -> bool:
        return self._handler.cluster

    @property
    def cache_ttl(self) -> float:
        """TTL of this cached view, 0 for the plain client."""
        return self._ttl

    # =========================================================================
    # Execution
    # =========================================================================

    def _execute(self, name: str, *args: Any, keys: KeysArg = None, **kwargs: Any) -> Any:
        """Run command ``name`` on the driver, bracketed by the handler."""
        command = get_command(name)
        ctx = self._handler.before(command, keys)
        if self._ttl > 0 and command.readonly and self._local is not None:
            return self._execute_cached(ctx, command, args, kwargs)
        return self._call(ctx, command, args, kwargs)

    def _call(self, ctx: CommandContext, command: Command, args: tuple, kwargs: dict) -> Any:
        try:
            result = getattr(self._driver, command.driver_method)(*args, **kwargs)
        except Exception as e:
            self._handler.after(ctx, e)
            raise
        self._handler.after(ctx)
        return result

    def _execute_cached(self, ctx: CommandContext, command: Command, args: tuple, kwargs: dict) -> Any:
        local = self._local
        assert local is not None
        cache_key = _cache_key(command, args, kwargs)
        value = local.get(cache_key, _CACHE_MISS)
        if value is not _CACHE_MISS:
            self._handler.cache(ctx, hit=True)
            self._handler.after(ctx)
            return value
        self._handler.cache(ctx, hit=False)
        value = self._call(ctx, command, args, kwargs)
        local.set(cache_key, value, self._ttl)
        return value

    def cache(self, ttl: float | timedelta) -> BaseClient:
        """Return a view that serves read-only commands from the local cache.

        Results are kept for ``ttl`` seconds. A non-positive ``ttl``, a client
        with caching disabled, or the current TTL return this client itself.
        Writes through the view are not cached.
        """
        if isinstance(ttl, timedelta):
            ttl = ttl.total_seconds()
        if ttl <= 0 or self._local is None or ttl == self._ttl:
            return self
        view = copy.copy(self)
        view._ttl = float(ttl)
        return view

    # =========================================================================
    # Fan-out
    # =========================================================================

    def nodes(self) -> list[Any]:
        """Per-node drivers: every primary in cluster mode, else the driver itself."""
        if self.is_cluster and hasattr(self._driver, "get_primaries"):
            return [node.redis_connection for node in self._driver.get_primaries()]
        return [self._driver]

    def for_each_node(self, fn: Callable[[Any], Any]) -> list[Any]:
        """Call ``fn`` with each node's driver.

        Every node is visited even when some fail. Failures are collected and
        raised together as :class:`~django_redisson.exceptions.Errors`.

        Returns:
            The results of ``fn``, in node order.
        """
        errs = Errors()
        results = []
        for node in self.nodes():
            try:
                results.append(fn(node))
            except Exception as e:  # noqa: BLE001
                errs.push(e)
        if (err := errs.err()) is not None:
            raise err
        return results

    def safe_mget(self, *keys: KeyT) -> list[Any]:
        """Like ``MGET``, but keys may live in different cluster slots.

        Keys are grouped by slot and fetched with one ``MGET`` per slot. The
        result is in the order of ``keys``.
        """
        with with_skip_check():
            if len(keys) <= 1 or not self.is_cluster:
                return self._execute("MGET", list(keys), keys=keys)

            by_slot: dict[int, list[int]] = {}
            for i, key in enumerate(keys):
                by_slot.setdefault(keys_slot(_as_bytes(key)), []).append(i)
            if len(by_slot) == 1:
                return self._execute("MGET", list(keys), keys=keys)

            results: list[Any] = [None] * len(keys)
            for indexes in by_slot.values():
                slot_keys = [keys[i] for i in indexes]
                values = self._execute("MGET", slot_keys, keys=slot_keys)
                for i, value in zip(indexes, values, strict=True):
                    results[i] = value
            return results

    # =========================================================================
    # Delay queue registry
    # =========================================================================

    def _register_delay_queue(self, queue: DelayQueue) -> DelayQueue:
        """Add ``queue`` unless one with the same name exists; return the winner."""
        with self._registry_lock:
            existing = self._delay_queues.get(queue.name)
            if existing is not None:
                return existing
            self._delay_queues[queue.name] = queue
            return queue

    def _unregister_delay_queue(self, queue: DelayQueue) -> None:
        with self._registry_lock:
            if self._delay_queues.get(queue.name) is queue:
                del self._delay_queues[queue.name]

    def delay_queues(self) -> list[DelayQueue]:
        """Snapshot of the open delay queues."""
        with self._registry_lock:
            return list(self._delay_queues.values())

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def close(self) -> None:
        """Close every delay queue, then the driver, and drop the local cache."""
        for queue in self.delay_queues():
            if not queue.closed:
                queue.close()
        self._driver.close()
        self._release_local_cache()

    def _release_local_cache(self) -> None:
        if self._local is None:
            return
        self._local.clear()
        locmem._caches.pop(self._local_name, None)
        locmem._expire_info.pop(self._local_name, None)
        locmem._locks.pop(self._local_name, None)


def _as_bytes(key: KeyT) -> bytes:
    if isinstance(key, bytes):
        return key
    if isinstance(key, memoryview):
        return key.tobytes()
    return str(key).encode()


def _cache_key(command: Command, args: tuple, kwargs: dict) -> str:
    """Digest identifying a read-only call in the local cache."""
    raw = repr((command.name, args, sorted(kwargs.items())))
    return f"{command.name}:{hashlib.sha1(raw.encode(), usedforsecurity=False).hexdigest()}"
