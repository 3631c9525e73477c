"""Pub/Sub sessions.

A session owns a dedicated driver connection. A worker thread reads from it
and writes :class:`Message` records into a bounded queue that callers drain
with :meth:`PubSub.channel` or :meth:`PubSub.get_message`. When the queue is
full the oldest message is dropped so the worker never stalls::

    with client.subscribe("news") as session:
        for message in session.channel():
            handle(message.payload)
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import TYPE_CHECKING, Any, NamedTuple, Self

from django_redisson.commands import get_command

if TYPE_CHECKING:
    from collections.abc import Iterator
    from types import TracebackType

    from django_redisson.client.base import BaseClient

logger = logging.getLogger(__name__)

MESSAGE_BUFFER = 100

_WORKER_SLEEP = 0.01
_JOIN_TIMEOUT = 5.0

# Marks the end of the message stream
_CLOSED = object()


class Message(NamedTuple):
    """A published message; ``pattern`` is None for plain subscriptions."""

    channel: Any
    pattern: Any
    payload: Any


class PubSub:
    """A subscription session on a dedicated connection."""

    def __init__(self, client: BaseClient, buffer: int = MESSAGE_BUFFER) -> None:
        self._client = client
        self._pubsub = client.driver.pubsub(ignore_subscribe_messages=True)
        self._messages: queue.Queue[Any] = queue.Queue(maxsize=buffer)
        self._lock = threading.Lock()
        self._closed = threading.Event()
        self._worker: Any = None
        # Messages discarded because the buffer was full
        self.dropped = 0

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    # =========================================================================
    # Subscriptions
    # =========================================================================

    def subscribe(self, *channels: Any) -> None:
        self._command("SUBSCRIBE", self._pubsub.subscribe, channels)

    def unsubscribe(self, *channels: Any) -> None:
        self._command("UNSUBSCRIBE", self._pubsub.unsubscribe, channels, register=False)

    def psubscribe(self, *patterns: Any) -> None:
        self._command("PSUBSCRIBE", self._pubsub.psubscribe, patterns)

    def punsubscribe(self, *patterns: Any) -> None:
        self._command("PUNSUBSCRIBE", self._pubsub.punsubscribe, patterns, register=False)

    def _command(self, name: str, method: Any, targets: tuple[Any, ...], register: bool = True) -> None:
        if not targets:
            return
        handler = self._client.handler
        ctx = handler.before(get_command(name))
        try:
            with self._lock:
                if register:
                    # Every subscription needs a callback for the worker thread
                    method(**{_as_str(t): self._on_message for t in targets})
                    self._start_worker()
                else:
                    method(*targets)
        except Exception as e:
            handler.after(ctx, e)
            raise
        handler.after(ctx)

    def _start_worker(self) -> None:
        if self._worker is None and not self.closed:
            self._worker = self._pubsub.run_in_thread(
                sleep_time=_WORKER_SLEEP,
                daemon=True,
                exception_handler=self._on_worker_error,
            )

    def _on_message(self, raw: dict[str, Any]) -> None:
        if self.closed:
            return
        message = Message(raw.get("channel"), raw.get("pattern"), raw.get("data"))
        if self._put_dropping_oldest(message):
            self.dropped += 1
            logger.warning("Pub/Sub buffer full, dropped the oldest message")

    def _put_dropping_oldest(self, item: Any) -> bool:
        """Enqueue ``item``, discarding the oldest entry while the buffer is full.

        Returns True if a message was discarded.
        """
        dropped = False
        while True:
            try:
                self._messages.put_nowait(item)
            except queue.Full:
                try:
                    self._messages.get_nowait()
                    dropped = True
                except queue.Empty:
                    pass
                continue
            return dropped

    def _on_worker_error(self, exc: BaseException, pubsub: Any, worker: Any) -> None:
        if self.closed:
            return
        logger.error("Pub/Sub worker stopped: %s", exc)
        worker.stop()
        self._end_stream()

    # =========================================================================
    # Receiving
    # =========================================================================

    def channel(self) -> Iterator[Message]:
        """Yield messages until the session closes."""
        while True:
            item = self._messages.get()
            if item is _CLOSED:
                # Leave the marker for other consumers
                self._end_stream()
                return
            yield item

    def get_message(self, timeout: float | None = None) -> Message | None:
        """Next message, or None on timeout or once the session is closed."""
        try:
            item = self._messages.get(timeout=timeout)
        except queue.Empty:
            return None
        if item is _CLOSED:
            self._end_stream()
            return None
        return item

    def _end_stream(self) -> None:
        self._put_dropping_oldest(_CLOSED)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def close(self) -> None:
        """Stop the worker, release the connection and end the stream. Idempotent."""
        with self._lock:
            if self.closed:
                return
            self._closed.set()
            worker = self._worker
        if worker is not None:
            worker.stop()
            if worker is not threading.current_thread():
                worker.join(_JOIN_TIMEOUT)
        self._pubsub.close()
        self._end_stream()


def _as_str(target: Any) -> str:
    if isinstance(target, bytes):
        return target.decode()
    return str(target)


class PubSubMixin:
    """Publish and introspection commands, plus sessions."""

    # Type hints for base class attributes
    _execute: Any

    def publish(self, channel: Any, message: Any) -> int:
        return self._execute("PUBLISH", channel, message)

    def pubsub_channels(self, pattern: str = "*") -> list[Any]:
        return self._execute("PUBSUB CHANNELS", pattern)

    def pubsub_numsub(self, *channels: Any) -> list[tuple[Any, int]]:
        return self._execute("PUBSUB NUMSUB", *channels)

    def pubsub_numpat(self) -> int:
        return self._execute("PUBSUB NUMPAT")

    def subscribe(self, *channels: Any) -> PubSub:
        """Open a session subscribed to ``channels``."""
        session = PubSub(self)  # type: ignore[arg-type]
        try:
            session.subscribe(*channels)
        except Exception:
            session.close()
            raise
        return session

    def psubscribe(self, *patterns: Any) -> PubSub:
        """Open a session subscribed to ``patterns``."""
        session = PubSub(self)  # type: ignore[arg-type]
        try:
            session.psubscribe(*patterns)
        except Exception:
            session.close()
            raise
        return session
