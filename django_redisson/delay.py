"""Distributed delay queue.

A queue named ``N`` keeps its state in two sorted sets:

- ``do:{N}``, the delay set. A non-negative score is the Unix second at which
  the payload becomes due; a negative score ``-k`` marks a payload that
  failed ``k`` times and is due immediately.
- ``doing:{N}``, the doing set. Payloads leased to a worker, scored by the
  Unix second at which the lease expires.

Both keys share the ``{N}`` hash tag, so they live in one cluster slot. An
optional prefix ``P`` yields ``P:do:{N}`` and ``P:doing:{N}``.

Two daemon threads drive the queue. The poll ticker moves due payloads into
the doing set and runs the callback for each; success removes the payload,
failure puts it back with a deeper negative score, and a payload whose
failure count exceeds ``retry_times`` goes to the dead-letter hook. The
reclaim ticker moves payloads with an expired lease back to the delay set.
Delivery is at-least-once.

Usage::

    def send_reminder(payload: bytes) -> None:
        ...

    queue = client.new_delay_queue("reminders", send_reminder, retry_times=5)
    queue.add(b"user:42", timedelta(minutes=10))
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from django.utils.module_loading import import_string

from django_redisson.exceptions import (
    DelayQueueClosedError,
    DelayQueueStartedError,
    EmptyDelayQueueCallbackError,
    EmptyDelayQueueNameError,
)
from django_redisson.script import LuaScript
from django_redisson.types import to_seconds

if TYPE_CHECKING:
    from collections.abc import Callable

    from django_redisson.client.base import BaseClient
    from django_redisson.types import ExpiryT

    type DelayCallback = Callable[[Any], Any]
    type DeadLetterHook = Callable[[Any], Any]

logger = logging.getLogger(__name__)

LOG_PREFIX = "[redis-delay]:"

DELAY_KEY_FORMAT = "do:{{{name}}}"
DOING_KEY_FORMAT = "doing:{{{name}}}"

# Seconds to wait for a ticker thread on close
_JOIN_TIMEOUT = 30.0

# =============================================================================
# Server-side scripts
# =============================================================================

MOVE_SCRIPT = LuaScript(
    name="delay-move",
    script="""local source_set, target_set = KEYS[1], KEYS[2]
local max_priority, score = ARGV[1], ARGV[2]
local items = redis.call('ZRANGEBYSCORE', source_set, '-inf', max_priority, 'WITHSCORES')
for i, value in ipairs(items) do
	if i % 2 ~= 0 then
		redis.call('ZADD', target_set, score or 0.0, value)
		redis.call('ZREM', source_set, value)
	end
end
return items""",
)

LENGTH_SCRIPT = LuaScript(
    name="delay-length",
    script="""local delay_set, doing_set = KEYS[1], KEYS[2]
local l1 = redis.call('ZCARD', delay_set)
local l2 = redis.call('ZCARD', doing_set)
return l1 + l2""",
)

ADD_SCRIPT = LuaScript(
    name="delay-add",
    script="""local delay_set = KEYS[1]
local value, score = ARGV[1], ARGV[2]
redis.call('ZADD', delay_set, score or 0.0, value)
return {true}""",
)

ACK_OK_SCRIPT = LuaScript(
    name="delay-ack-ok",
    script="""local doing_set = KEYS[1]
local value = ARGV[1]
redis.call('ZREM', doing_set, value)
return {true}""",
)

ACK_FAIL_SCRIPT = LuaScript(
    name="delay-ack-fail",
    script="""local delay_set, doing_set = KEYS[1], KEYS[2]
local value, score = ARGV[1], tonumber(ARGV[2])
redis.call('ZREM', doing_set, value)
redis.call('ZADD', delay_set, score-1, value)
return {true}""",
)


def log_dead_letter(payload: Any) -> None:
    """Default dead-letter hook: log the payload."""
    logger.warning("%s got dead letter, %r", LOG_PREFIX, payload)


@dataclass(frozen=True)
class DelayOptions:
    """Options of one delay queue.

    Attributes:
        prefix: Optional key prefix.
        timeout: Lease length in seconds; a payload not acknowledged within it
            is reclaimed.
        retry_times: Failures tolerated before a payload is dead-lettered.
        dead_letter: Hook called with dead payloads, or its dotted path.
        interval: Seconds between two ticks of each ticker.
    """

    prefix: str = ""
    timeout: ExpiryT = 60.0
    retry_times: int = 3
    dead_letter: DeadLetterHook | str | None = log_dead_letter
    interval: float = 1.0

    def __post_init__(self) -> None:
        if isinstance(self.dead_letter, str):
            object.__setattr__(self, "dead_letter", import_string(self.dead_letter))
        timeout = self.timeout
        if not isinstance(timeout, (int, float)):
            object.__setattr__(self, "timeout", to_seconds(timeout))
        if self.interval <= 0:
            msg = "interval must be positive"
            raise ValueError(msg)


def delay_seconds(delay: ExpiryT) -> int:
    """Whole seconds of ``delay``; a positive delay below one second is one second."""
    seconds = to_seconds(delay)
    if 0 < seconds < 1:
        return 1
    return int(seconds)


class DelayQueue:
    """One named delay queue bound to a client.

    Create queues with ``Client.new_delay_queue``, which returns the open
    queue of the same name if there is one.
    """

    def __init__(
        self,
        client: BaseClient,
        name: str,
        callback: DelayCallback,
        options: DelayOptions | None = None,
    ) -> None:
        if not name:
            raise EmptyDelayQueueNameError
        if callback is None:
            raise EmptyDelayQueueCallbackError

        self.name = name
        self.options = options or DelayOptions()
        self._client = client
        self._callback = callback

        self.delay_key = DELAY_KEY_FORMAT.format(name=name)
        self.doing_key = DOING_KEY_FORMAT.format(name=name)
        if self.options.prefix:
            self.delay_key = f"{self.options.prefix}:{self.delay_key}"
            self.doing_key = f"{self.options.prefix}:{self.doing_key}"

        # move() is written for [source, target]; the two directions are named apart
        self._poll_keys = [self.delay_key, self.doing_key]
        self._reclaim_keys = [self.doing_key, self.delay_key]

        self._move = client.create_script(MOVE_SCRIPT)
        self._length = client.create_script(LENGTH_SCRIPT)
        self._add = client.create_script(ADD_SCRIPT)
        self._ack_ok = client.create_script(ACK_OK_SCRIPT)
        self._ack_fail = client.create_script(ACK_FAIL_SCRIPT)

        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._threads: list[threading.Thread] = []
        self._running = False
        self._closed = False

    def __repr__(self) -> str:
        return f"<DelayQueue {self.name!r} delay={self.delay_key!r} doing={self.doing_key!r}>"

    @property
    def closed(self) -> bool:
        return self._closed

    # =========================================================================
    # Public API
    # =========================================================================

    def add(self, payload: bytes | str, delay: ExpiryT = 0) -> None:
        """Enqueue ``payload`` to fire after ``delay`` (seconds or timedelta).

        Raises:
            DelayQueueClosedError: the queue has been closed.
        """
        if self._closed:
            raise DelayQueueClosedError
        score = int(time.time()) + delay_seconds(delay)
        self._add.run(keys=[self.delay_key], args=[payload, score])

    def length(self) -> int:
        """Payloads waiting plus payloads being handled."""
        return int(self._length.run(keys=self._poll_keys))

    def start(self) -> None:
        """Start the poll and reclaim tickers.

        Raises:
            DelayQueueStartedError: the tickers are already running.
            DelayQueueClosedError: the queue has been closed.
        """
        with self._lock:
            if self._closed:
                raise DelayQueueClosedError
            if self._running:
                raise DelayQueueStartedError
            self._running = True
            self._threads = [
                threading.Thread(
                    target=self._run_ticker,
                    args=(self.poll, "poll"),
                    name=f"redis-delay-poll-{self.name}",
                    daemon=True,
                ),
                threading.Thread(
                    target=self._run_ticker,
                    args=(self.reclaim, "reclaim"),
                    name=f"redis-delay-reclaim-{self.name}",
                    daemon=True,
                ),
            ]
        for thread in self._threads:
            thread.start()

    def close(self) -> None:
        """Stop the tickers and remove the queue from its client.

        May be called from inside the callback; the calling ticker finishes
        its current tick and exits.

        Raises:
            DelayQueueClosedError: the queue was already closed.
        """
        with self._lock:
            if self._closed:
                raise DelayQueueClosedError
            self._closed = True
            self._running = False
            self._stop.set()
            threads = list(self._threads)

        current = threading.current_thread()
        for thread in threads:
            if thread is not current:
                thread.join(_JOIN_TIMEOUT)
        self._client._unregister_delay_queue(self)

    # =========================================================================
    # Tickers
    # =========================================================================

    def _run_ticker(self, tick: Callable[[], None], kind: str) -> None:
        # Fire immediately, then once per interval until closed
        while not self._stop.is_set():
            try:
                tick()
            except Exception:
                logger.exception("%s %s ticker error, queue %s", LOG_PREFIX, kind, self.name)
            self._stop.wait(self.options.interval)

    def poll(self) -> None:
        """Move due payloads into the doing set and handle each of them."""
        now = int(time.time())
        try:
            items = self._move.run(keys=self._poll_keys, args=[now, float(now + self.options.timeout)])
        except Exception:
            self._client.handler.delay_poll_error(self.name)
            raise

        for payload, raw_score in zip(items[::2], items[1::2], strict=True):
            score = _parse_score(raw_score)
            if score < 0:
                if abs(score) > self.options.retry_times:
                    self._dead_letter(payload)
                    continue
            else:
                score = 0

            if self._handle(payload):
                self._ack(payload)
            else:
                self._retry(payload, score)

    def reclaim(self) -> None:
        """Move payloads whose lease expired back to the delay set."""
        now = int(time.time())
        try:
            items = self._move.run(keys=self._reclaim_keys, args=[now, float(now + self.options.timeout)])
        except Exception:
            self._client.handler.delay_reclaim_error(self.name)
            raise
        if items:
            count = len(items) // 2
            logger.debug("%s reclaimed %d payloads from %s", LOG_PREFIX, count, self.doing_key)
            self._client.handler.delay_reclaim(self.name, count)

    # =========================================================================
    # Payload handling
    # =========================================================================

    def _handle(self, payload: Any) -> bool:
        try:
            self._callback(payload)
        except Exception:
            logger.exception("%s handle task failed, queue %s", LOG_PREFIX, self.name)
            return False
        return True

    def _dead_letter(self, payload: Any) -> None:
        # The payload sits in the doing set since the move
        self._ack(payload)
        hook = self.options.dead_letter
        if hook is None:
            return
        try:
            hook(payload)
        except Exception:
            logger.exception("%s handle dead letter failed, queue %s", LOG_PREFIX, self.name)

    def _ack(self, payload: Any) -> None:
        try:
            self._ack_ok.run(keys=[self.doing_key], args=[payload])
        except Exception:
            logger.exception("%s ack failed, %r", LOG_PREFIX, payload)

    def _retry(self, payload: Any, score: int) -> None:
        try:
            self._ack_fail.run(keys=self._poll_keys, args=[payload, score])
        except Exception:
            logger.exception("%s retry add failed, %r, %d", LOG_PREFIX, payload, score)


def _parse_score(raw: Any) -> int:
    if isinstance(raw, bytes):
        raw = raw.decode()
    return int(float(raw))
