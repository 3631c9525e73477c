"""Command pipelines.

Usage::

    pipe = client.pipeline()
    pipe.put("SET", ["k"], "v")
    pipe.put("GET", ["k"])
    results = pipe.execute()
    # results = [True, b"v"]

The whole flush is measured as one ``PIPELINE`` call.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Any, NamedTuple

from django_redisson.commands import PIPELINE, Command, get_command
from django_redisson.exceptions import PipelineError, _ResponseError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from django_redisson.client.base import BaseClient
    from django_redisson.types import KeyT


class PipeCommand(NamedTuple):
    """One queued command."""

    command: Command
    keys: tuple[KeyT, ...]
    args: tuple[Any, ...]

    def tokens(self) -> list[Any]:
        return [*self.command.name.split(), *self.keys, *self.args]


class Pipeline:
    """Buffers commands and sends them in one round trip."""

    def __init__(self, client: BaseClient) -> None:
        self._client = client
        self._commands: list[PipeCommand] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._commands)

    def put(self, command: Command | str, keys: Sequence[KeyT] = (), *args: Any) -> None:
        """Queue ``command`` with its ``keys`` and ``args``. Thread-safe."""
        if isinstance(command, str):
            command = get_command(command)
        with self._lock:
            self._commands.append(PipeCommand(command, tuple(keys), args))

    def execute(self) -> list[Any]:
        """Send every queued command and return the results in queue order.

        Per-command failures stay in the result list as exception instances.

        Raises:
            PipelineError: at least one command failed; ``results`` holds the
                full result list and the first failure is chained.
        """
        handler = self._client.handler
        ctx = handler.before(PIPELINE)

        with self._lock:
            commands = list(self._commands)
            self._commands.clear()

        first_error: BaseException | None = None
        try:
            if not commands:
                results: list[Any] = []
            elif len(commands) == 1:
                results = [self._execute_single(commands[0])]
            else:
                results = self._execute_batch(commands)
            first_error = next((r for r in results if isinstance(r, BaseException)), None)
        except Exception as e:
            handler.after(ctx, e)
            raise

        handler.after(ctx, first_error)
        if first_error is not None:
            raise PipelineError(results, first_error) from first_error
        return results

    def _execute_single(self, command: PipeCommand) -> Any:
        try:
            return self._client.driver.execute_command(*command.tokens())
        except _ResponseError as e:
            return e

    def _execute_batch(self, commands: list[PipeCommand]) -> list[Any]:
        pipe = self._client.driver.pipeline(transaction=False)
        for command in commands:
            pipe.execute_command(*command.tokens())
        return list(pipe.execute(raise_on_error=False))


class PipelineMixin:
    """Adds :meth:`pipeline` to the client."""

    def pipeline(self) -> Pipeline:
        return Pipeline(self)  # type: ignore[arg-type]
