"""Lua script support for django-redisson.

Scripts are sent with ``EVALSHA`` and fall back to ``EVAL`` when the server
has not cached them yet. Every call goes through the client façade, so
scripts are checked and measured like any other command.

Example::

    from django_redisson import get_redis_client

    client = get_redis_client()
    script = client.create_script(
        '''
        local current = redis.call('INCR', KEYS[1])
        if current == 1 then
            redis.call('EXPIRE', KEYS[1], ARGV[1])
        end
        return current
        '''
    )
    count = script.run(keys=["user:123:req"], args=[60])
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from django_redisson.exceptions import _NoScriptError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from django_redisson.client import Client


@dataclass
class LuaScript:
    """Lua source with an optional name and its cached SHA1 digest."""

    script: str
    name: str = ""

    _sha: str | None = field(default=None, repr=False, compare=False)

    @property
    def sha(self) -> str:
        if self._sha is None:
            self._sha = hashlib.sha1(self.script.encode(), usedforsecurity=False).hexdigest()
        return self._sha


class Scripter:
    """A Lua script bound to a client."""

    def __init__(self, client: Client, script: LuaScript | str) -> None:
        if isinstance(script, str):
            script = LuaScript(script)
        self._client = client
        self._script = script

    @property
    def script(self) -> LuaScript:
        return self._script

    def hash(self) -> str:
        """SHA1 digest the server uses to identify the script."""
        return self._script.sha

    def run(self, keys: Sequence[Any] = (), args: Sequence[Any] = ()) -> Any:
        """Run with ``EVALSHA``, retrying with ``EVAL`` on ``NOSCRIPT``."""
        try:
            return self.evalsha(keys, args)
        except _NoScriptError:
            return self.eval(keys, args)

    def eval(self, keys: Sequence[Any] = (), args: Sequence[Any] = ()) -> Any:
        return self._client.eval(self._script.script, keys, args)

    def evalsha(self, keys: Sequence[Any] = (), args: Sequence[Any] = ()) -> Any:
        return self._client.evalsha(self.hash(), keys, args)

    def load(self) -> str:
        """Load the script into the server cache and return its digest."""
        return self._client.script_load(self._script.script)

    def exists(self) -> bool:
        """Whether the server has the script cached."""
        return bool(self._client.script_exists(self.hash())[0])
