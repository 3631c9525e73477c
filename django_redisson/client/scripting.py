from __future__ import annotations

from typing import TYPE_CHECKING, Any

from django_redisson.script import LuaScript, Scripter

if TYPE_CHECKING:
    from collections.abc import Sequence


class ScriptingMixin:
    """Lua scripting commands."""

    # Type hints for base class attributes
    _execute: Any

    def eval(self, script: str, keys: Sequence[Any] = (), args: Sequence[Any] = ()) -> Any:
        return self._execute("EVAL", script, len(keys), *keys, *args, keys=keys)

    def evalsha(self, sha: str, keys: Sequence[Any] = (), args: Sequence[Any] = ()) -> Any:
        return self._execute("EVALSHA", sha, len(keys), *keys, *args, keys=keys)

    def script_load(self, script: str) -> str:
        return self._execute("SCRIPT LOAD", script)

    def script_exists(self, *shas: str) -> list[bool]:
        return self._execute("SCRIPT EXISTS", *shas)

    def create_script(self, script: str | LuaScript) -> Scripter:
        """Bind a Lua script to this client."""
        return Scripter(self, script)  # type: ignore[arg-type]
