"""Exceptions for django-redisson.

This module defines the exceptions raised by the client, the command
gatekeeper, the delay queue and the pipeline, plus the ``Errors`` container
used by fan-out operations.
"""

from __future__ import annotations

import socket
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

# Build exception tuples from available libraries (redis-py / valkey-py).
# These are used by the connection negotiator and the client layer.
_exception_list: list[type[Exception]] = [socket.timeout]
_RedisResponseError: type[Exception] | None = None
_ValkeyResponseError: type[Exception] | None = None

try:
    from redis.exceptions import ConnectionError as RedisConnectionError
    from redis.exceptions import RedisClusterException, RedisError
    from redis.exceptions import ResponseError as RedisResponseError
    from redis.exceptions import TimeoutError as RedisTimeoutError

    _RedisResponseError = RedisResponseError
    _exception_list.extend(
        [RedisConnectionError, RedisTimeoutError, RedisResponseError, RedisClusterException, RedisError],
    )
except ImportError:
    pass

try:
    from valkey.exceptions import ConnectionError as ValkeyConnectionError
    from valkey.exceptions import ResponseError as ValkeyResponseError
    from valkey.exceptions import TimeoutError as ValkeyTimeoutError
    from valkey.exceptions import ValkeyError

    _ValkeyResponseError = ValkeyResponseError
    _exception_list.extend([ValkeyConnectionError, ValkeyTimeoutError, ValkeyResponseError, ValkeyError])
except ImportError:
    pass

_main_exceptions = tuple(_exception_list)

_response_errors: list[type[Exception]] = []
if _RedisResponseError is not None:
    _response_errors.append(_RedisResponseError)
if _ValkeyResponseError is not None:
    _response_errors.append(_ValkeyResponseError)
_ResponseError = tuple(_response_errors) if _response_errors else (Exception,)

# NOSCRIPT replies, raised by EVALSHA when the server has not cached a script
_noscript_errors: list[type[Exception]] = []
try:
    from redis.exceptions import NoScriptError as RedisNoScriptError

    _noscript_errors.append(RedisNoScriptError)
except ImportError:
    pass
try:
    from valkey.exceptions import NoScriptError as ValkeyNoScriptError

    _noscript_errors.append(ValkeyNoScriptError)
except ImportError:
    pass
_NoScriptError = tuple(_noscript_errors)


class RedissonError(Exception):
    """Base class for every error raised by django-redisson itself."""


class NilError(RedissonError):
    """Signals that a lookup found no value.

    redis-py returns None for nil replies, so django-redisson never raises
    this itself. It exists for driver wrappers and callers that prefer an
    exception for a missing value. The default silent-error predicate
    (:func:`is_nil`) tells the metrics tap to count it as a normal outcome,
    and custom predicates can build on it.
    """

    def __init__(self, message: str = "redis: nil") -> None:
        super().__init__(message)


def is_nil(exc: BaseException | None) -> bool:
    """Return True if ``exc`` is the nil-lookup sentinel."""
    return isinstance(exc, NilError)


class VersionParseError(RedissonError, ValueError):
    """Raised when a server version string cannot be parsed."""


class NoCacheError(RedissonError):
    """Raised when client side caching is requested but cannot be offered.

    Client side caching is only offered over RESP3. The connection negotiator
    reacts to this error by disabling the cache and reconnecting.
    """

    def __init__(self, message: str = "no cache: client side caching is only supported with RESP3") -> None:
        super().__init__(message)


class InvalidAliasError(RedissonError):
    """Raised when ``settings.REDISSON`` has no entry for an alias."""

    def __init__(self, alias: str) -> None:
        self.alias = alias
        super().__init__(f"The redis client alias {alias!r} is not configured in settings.REDISSON")


class ClusterSettingConflictError(RedissonError):
    """Raised when the declared cluster flag disagrees with the server.

    Attributes:
        declared: The ``cluster`` option the caller configured.
        observed: The ``cluster_enabled`` flag reported by the server.
    """

    def __init__(self, declared: bool, observed: bool) -> None:
        self.declared = declared
        self.observed = observed
        super().__init__(
            f"Cluster setting conflict: configured cluster={declared}, server cluster_enabled={int(observed)}",
        )


# =============================================================================
# Gatekeeper errors
# =============================================================================


class ProgrammingError(RedissonError):
    """Raised by the development-mode gatekeeper for misuse of a command."""


class CommandForbiddenError(ProgrammingError):
    """Raised when a forbidden command is used in development mode."""

    def __init__(self, command: str) -> None:
        self.command = command
        super().__init__(f"[{command}]: redis command are not allowed")


class CommandVersionError(ProgrammingError):
    """Raised when the server is older than the command requires.

    Attributes:
        command: The command name.
        version: The version reported by the server.
        required: The minimum version the command needs.
    """

    def __init__(self, command: str, version: str, required: str) -> None:
        self.command = command
        self.version = version
        self.required = required
        super().__init__(
            f"[{command}]: redis command are not supported in version {version!r}, available since {required}",
        )


class CrossSlotError(ProgrammingError):
    """Raised when a multi-key command spans more than one cluster slot."""

    def __init__(self, command: str, keys: Sequence[str | bytes]) -> None:
        self.command = command
        self.keys = list(keys)
        super().__init__(f"[{command}]: multiple keys command with different key slots are not allowed")


# =============================================================================
# Delay queue errors
# =============================================================================


class DelayQueueError(RedissonError):
    """Base class for delay queue errors."""


class EmptyDelayQueueNameError(DelayQueueError):
    def __init__(self) -> None:
        super().__init__("delay queue name cannot be empty")


class EmptyDelayQueueCallbackError(DelayQueueError):
    def __init__(self) -> None:
        super().__init__("delay queue callback cannot be empty")


class DelayQueueClosedError(DelayQueueError):
    def __init__(self) -> None:
        super().__init__("delay queue has closed")


class DelayQueueStartedError(DelayQueueError):
    def __init__(self) -> None:
        super().__init__("delay queue has started")


# =============================================================================
# Pipeline
# =============================================================================


class PipelineError(RedissonError):
    """Raised when at least one command of a pipeline failed.

    The first failure is chained as ``__cause__``. Every result, including the
    per-command exceptions, is available on ``results`` in queue order.
    """

    def __init__(self, results: list, first_error: BaseException) -> None:
        self.results = results
        self.first_error = first_error
        super().__init__(f"pipeline command failed: {first_error}")


class LockNotAcquiredError(RedissonError):
    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Unable to acquire lock {key!r}")


# =============================================================================
# Errors - multi-error container
# =============================================================================

type ErrorFormatFunc = Callable[[list[BaseException]], str]


def list_format(errors: list[BaseException]) -> str:
    """Format errors as a numbered list.

    Example output::

        2 errors occurred:
        #1: error 1
        #2: error 2
    """
    points = [f"#{i}: {err}" for i, err in enumerate(errors, start=1)]
    return f"{len(errors)} errors occurred:\n" + "\n".join(points)


def dot_format(errors: list[BaseException]) -> str:
    """Format errors separated by commas, e.g. ``error 1,error 2``."""
    return ",".join(str(err) for err in errors)


class Errors(RedissonError):
    """A container that collects several errors and can be raised as one.

    ``None`` values pushed into the container are dropped, so callers can
    push the outcome of every operation unconditionally::

        errs = Errors()
        for node in nodes:
            errs.push(run(node))
        if (err := errs.err()) is not None:
            raise err
    """

    def __init__(self, errors: Sequence[BaseException] | None = None) -> None:
        super().__init__()
        self._errors: list[BaseException] = [e for e in errors or () if e is not None]
        self._format_func: ErrorFormatFunc | None = None

    def __str__(self) -> str:
        fn = self._format_func or list_format
        return fn(self._errors)

    def __repr__(self) -> str:
        return f"Errors({self._errors!r})"

    def __len__(self) -> int:
        return len(self._errors)

    def push(self, err: BaseException | None) -> None:
        """Add an error; ``None`` is ignored."""
        if err is None:
            return
        self._errors.append(err)

    def last_err(self) -> BaseException | None:
        """Return the most recently pushed error, or None."""
        if not self._errors:
            return None
        return self._errors[-1]

    def err(self) -> Errors | None:
        """Return the container itself, or None when no error was pushed."""
        if not self._errors:
            return None
        return self

    def wrapped_errors(self) -> list[BaseException]:
        """Return the collected errors."""
        return list(self._errors)

    def set_format_func(self, fn: ErrorFormatFunc | None) -> None:
        """Change how the container renders itself (default: ``list_format``)."""
        self._format_func = fn
