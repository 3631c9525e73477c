"""Per-command gatekeeper and metrics tap.

Every façade call is bracketed by :meth:`Handler.before` and
:meth:`Handler.after`::

    ctx = handler.before(command, keys)
    try:
        result = driver_call()
    except Exception as e:
        handler.after(ctx, e)
        raise
    handler.after(ctx)

In development mode ``before`` rejects forbidden commands, commands newer
than the server, and multi-key commands whose keys live in different cluster
slots. It also logs deprecation warnings. With monitoring enabled the
context carries the start time and labels that ``after`` turns into a
latency sample or an error count.
"""

from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import TYPE_CHECKING

from django_redisson import metrics
from django_redisson.exceptions import (
    CommandForbiddenError,
    CommandVersionError,
    CrossSlotError,
    is_nil,
)

try:
    from redis.crc import key_slot
except ImportError:
    from valkey.crc import key_slot

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Sequence

    from django_redisson.commands import Command
    from django_redisson.conf import Conf
    from django_redisson.probe import Version

    type KeysArg = Sequence[str | bytes] | Callable[[], Sequence[str | bytes]] | None

logger = logging.getLogger(__name__)

_skip_check: ContextVar[bool] = ContextVar("redisson_skip_check", default=False)
_sub_command_name: ContextVar[str | None] = ContextVar("redisson_sub_command_name", default=None)

# Commands that already logged their once-per-process deprecation warning
_warned_once: set[str] = set()
_warned_lock = threading.Lock()


@contextmanager
def with_skip_check() -> Iterator[None]:
    """Disable the development-mode preflight for calls made in this block."""
    token = _skip_check.set(True)
    try:
        yield
    finally:
        _skip_check.reset(token)


@contextmanager
def with_sub_command_name(name: str) -> Iterator[None]:
    """Override the ``s_command`` metrics label for calls made in this block."""
    token = _sub_command_name.set(name)
    try:
        yield
    finally:
        _sub_command_name.reset(token)


def keys_slot(key: str | bytes) -> int:
    """Hash slot of ``key`` (CRC16 mod 16384, honouring ``{hash tags}``)."""
    if isinstance(key, str):
        key = key.encode()
    return key_slot(key)


@dataclass
class CommandContext:
    """State carried from ``before`` to ``after`` for one call."""

    command: Command
    group: str
    sub_command: str
    start: float | None = None


class Handler:
    """Gatekeeper and metrics tap shared by a client and its cached views."""

    def __init__(self, conf: Conf) -> None:
        self.conf = conf
        self.version: Version | None = None
        self.cluster = False
        self.silent_error: Callable[[BaseException], bool] = is_nil

    def is_silent_error(self, error: BaseException) -> bool:
        return bool(self.silent_error(error))

    # =========================================================================
    # Command bracketing
    # =========================================================================

    def before(self, command: Command, keys: KeysArg = None) -> CommandContext:
        """Validate ``command`` and start measuring it.

        ``keys`` may be a sequence or a zero-argument callable; the callable
        is only evaluated when the cross-slot check needs it.

        Raises:
            CommandForbiddenError: the command is forbidden in development mode.
            CommandVersionError: the server is older than the command.
            CrossSlotError: the keys span more than one cluster slot.
        """
        if self.conf.development and not _skip_check.get():
            self._check(command, keys)

        ctx = CommandContext(
            command=command,
            group=command.group,
            sub_command=_sub_command_name.get() or command.name,
        )
        if self.conf.enable_monitor:
            ctx.start = time.perf_counter()
        return ctx

    def after(self, ctx: CommandContext, error: BaseException | None = None) -> None:
        """Record the outcome of the call started with ``before``."""
        if not self.conf.enable_monitor or ctx.start is None:
            return
        if error is not None and not self.is_silent_error(error):
            metrics.EXEC_ERROR.labels(ctx.group, ctx.sub_command).inc()
        else:
            metrics.EXEC_TIMING.labels(ctx.group, ctx.sub_command).observe(time.perf_counter() - ctx.start)

    def cache(self, ctx: CommandContext, hit: bool) -> None:
        """Record a client side cache hit or miss."""
        if not self.conf.enable_monitor:
            return
        if hit:
            metrics.CACHE_HITS.labels(ctx.group, ctx.sub_command).inc()
        else:
            metrics.CACHE_MISS.labels(ctx.group, ctx.sub_command).inc()

    # =========================================================================
    # Delay queue hooks
    # =========================================================================

    def delay_poll_error(self, name: str) -> None:
        metrics.DELAY_POLL_ERROR.labels(name).inc()

    def delay_reclaim_error(self, name: str) -> None:
        metrics.DELAY_RECLAIM_ERROR.labels(name).inc()

    def delay_reclaim(self, name: str, count: int) -> None:
        metrics.DELAY_RECLAIM.labels(name).inc(count)

    # =========================================================================
    # Preflight
    # =========================================================================

    def _check(self, command: Command, keys: KeysArg) -> None:
        if command.forbid:
            raise CommandForbiddenError(command.name)

        if self.version is not None and self.version < command.required_version:
            raise CommandVersionError(command.name, str(self.version), command.since)

        if self.cluster and keys is not None:
            self._check_slots(command, keys() if callable(keys) else keys)

        if self.version is not None:
            warn_version = command.warn_version
            if warn_version is not None and self.version >= warn_version:
                self._warn(command)

    def _check_slots(self, command: Command, keys: Sequence[str | bytes]) -> None:
        if len(keys) < 2:
            return
        first = keys_slot(keys[0])
        for key in keys[1:]:
            if keys_slot(key) != first:
                raise CrossSlotError(command.name, keys)

    def _warn(self, command: Command) -> None:
        if command.warn_once:
            with _warned_lock:
                if command.name in _warned_once:
                    return
                _warned_once.add(command.name)
        logger.warning(deprecation_message(command))


def deprecation_message(command: Command) -> str:
    """Render the deprecation warning logged for ``command``."""
    message = f"[{command.name}]: {command.warning}"
    if command.instead:
        message += f" \n\t\t use '{command.instead}' instead."
    if command.etc:
        message += f" \n\t\t {command.etc}, etc."
    return message
