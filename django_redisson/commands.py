"""Command identities checked by the gatekeeper.

Every façade method resolves one of these records before it touches the
driver. The record tells the handler which server version introduced the
command, whether development mode forbids it, and whether it is deprecated.
"""

from __future__ import annotations

from dataclasses import dataclass

from django_redisson.probe import Version


@dataclass(frozen=True)
class Command:
    """Static metadata of one Redis command.

    Attributes:
        name: Upper-case command name, also the ``s_command`` metrics label.
        group: Command group, used as the ``command`` metrics label.
        since: First server version that supports the command.
        method: Name of the driver method the façade dispatches to.
        readonly: Whether results may be served from the client side cache.
        forbid: Whether development mode rejects the command.
        warn_since: Server version from which a deprecation warning is logged.
        warning: Deprecation message.
        instead: Suggested replacement.
        etc: Extra hint appended to the warning.
        warn_once: Log the deprecation warning once per process.
    """

    name: str
    group: str
    since: str = "1.0.0"
    method: str = ""
    readonly: bool = False
    forbid: bool = False
    warn_since: str = ""
    warning: str = ""
    instead: str = ""
    etc: str = ""
    warn_once: bool = True

    def __str__(self) -> str:
        return self.name

    @property
    def required_version(self) -> Version:
        return Version.parse(self.since)

    @property
    def warn_version(self) -> Version | None:
        if not self.warn_since:
            return None
        return Version.parse(self.warn_since)

    @property
    def driver_method(self) -> str:
        return self.method or self.name.lower().replace(" ", "_")


_SET_OPTIONS = "SET with EX, PX or NX options"

_TABLE = [
    # String
    Command("APPEND", "String", "2.0.0"),
    Command("DECR", "String"),
    Command("DECRBY", "String"),
    Command("GET", "String", readonly=True),
    Command("GETDEL", "String", "6.2.0"),
    Command("GETEX", "String", "6.2.0"),
    Command("GETRANGE", "String", "2.4.0", readonly=True),
    Command("INCR", "String"),
    Command("INCRBY", "String"),
    Command("INCRBYFLOAT", "String", "2.6.0"),
    Command("MGET", "String", readonly=True),
    Command("MSET", "String", "1.0.1"),
    Command("PSETEX", "String", "2.6.0", warn_since="2.6.12", warning="deprecated", instead=_SET_OPTIONS),
    Command("SET", "String"),
    Command("SETEX", "String", "2.0.0", warn_since="2.6.12", warning="deprecated", instead=_SET_OPTIONS),
    Command("SETNX", "String", warn_since="2.6.12", warning="deprecated", instead=_SET_OPTIONS),
    Command("STRLEN", "String", "2.2.0", readonly=True),
    # Generic
    Command("DEL", "Generic", method="delete"),
    Command("EXISTS", "Generic", readonly=True),
    Command("EXPIRE", "Generic"),
    Command("EXPIREAT", "Generic", "1.2.0"),
    Command("KEYS", "Generic", forbid=True),
    Command("PERSIST", "Generic", "2.2.0"),
    Command("PEXPIRE", "Generic", "2.6.0"),
    Command("PTTL", "Generic", "2.6.0", readonly=True),
    Command("RENAME", "Generic"),
    Command("SCAN", "Generic", "2.8.0", readonly=True),
    Command("TOUCH", "Generic", "3.2.1"),
    Command("TTL", "Generic", readonly=True),
    Command("TYPE", "Generic", readonly=True),
    Command("UNLINK", "Generic", "4.0.0"),
    # Hash
    Command("HDEL", "Hash", "2.0.0"),
    Command("HEXISTS", "Hash", "2.0.0", readonly=True),
    Command("HGET", "Hash", "2.0.0", readonly=True),
    Command("HGETALL", "Hash", "2.0.0", readonly=True),
    Command("HINCRBY", "Hash", "2.0.0"),
    Command("HKEYS", "Hash", "2.0.0", readonly=True),
    Command("HLEN", "Hash", "2.0.0", readonly=True),
    Command("HMGET", "Hash", "2.0.0", readonly=True),
    Command("HMSET", "Hash", "2.0.0", warn_since="4.0.0", warning="deprecated", instead="HSET with multiple field-value pairs"),
    Command("HSET", "Hash", "2.0.0"),
    Command("HVALS", "Hash", "2.0.0", readonly=True),
    # List
    Command("LINDEX", "List", readonly=True),
    Command("LLEN", "List", readonly=True),
    Command("LPOP", "List"),
    Command("LPUSH", "List"),
    Command("LRANGE", "List", readonly=True),
    Command("LREM", "List"),
    Command("LTRIM", "List"),
    Command("RPOP", "List"),
    Command("RPUSH", "List"),
    # Set
    Command("SADD", "Set"),
    Command("SCARD", "Set", readonly=True),
    Command("SDIFF", "Set", readonly=True),
    Command("SINTER", "Set", readonly=True),
    Command("SISMEMBER", "Set", readonly=True),
    Command("SMEMBERS", "Set", readonly=True),
    Command("SREM", "Set"),
    Command("SUNION", "Set", readonly=True),
    # SortedSet
    Command("ZADD", "SortedSet", "1.2.0"),
    Command("ZCARD", "SortedSet", "1.2.0", readonly=True),
    Command("ZCOUNT", "SortedSet", "2.0.0", readonly=True),
    Command("ZINCRBY", "SortedSet", "1.2.0"),
    Command("ZRANGE", "SortedSet", "1.2.0", readonly=True),
    Command(
        "ZRANGEBYSCORE",
        "SortedSet",
        "1.0.5",
        readonly=True,
        warn_since="6.2.0",
        warning="deprecated",
        instead="ZRANGE with the BYSCORE argument",
    ),
    Command("ZRANK", "SortedSet", "2.0.0", readonly=True),
    Command("ZREM", "SortedSet", "1.2.0"),
    Command("ZSCORE", "SortedSet", "1.2.0", readonly=True),
    # Geospatial
    Command("GEOADD", "Geospatial", "3.2.0"),
    Command("GEODIST", "Geospatial", "3.2.0", readonly=True),
    Command("GEOHASH", "Geospatial", "3.2.0", readonly=True),
    Command("GEOPOS", "Geospatial", "3.2.0", readonly=True),
    Command(
        "GEORADIUS",
        "Geospatial",
        "3.2.0",
        warn_since="6.2.0",
        warning="deprecated",
        instead="GEOSEARCH and GEOSEARCHSTORE with the BYRADIUS argument",
    ),
    Command(
        "GEORADIUSBYMEMBER",
        "Geospatial",
        "3.2.0",
        warn_since="6.2.0",
        warning="deprecated",
        instead="GEOSEARCH and GEOSEARCHSTORE with the BYRADIUS and FROMMEMBER arguments",
    ),
    Command("GEOSEARCH", "Geospatial", "6.2.0", readonly=True),
    # Server / Connection
    Command("DBSIZE", "Server", readonly=True),
    Command("ECHO", "Connection"),
    Command("FLUSHALL", "Server", forbid=True),
    Command("FLUSHDB", "Server", forbid=True),
    Command("INFO", "Server"),
    Command("PING", "Connection"),
    Command("TIME", "Server", "2.6.0"),
    # Scripting
    Command("EVAL", "Scripting", "2.6.0"),
    Command("EVALSHA", "Scripting", "2.6.0"),
    Command("SCRIPT EXISTS", "Scripting", "2.6.0"),
    Command("SCRIPT LOAD", "Scripting", "2.6.0"),
    # PubSub
    Command("PSUBSCRIBE", "PubSub", "2.0.0"),
    Command("PUBLISH", "PubSub", "2.0.0"),
    Command("PUBSUB CHANNELS", "PubSub", "2.8.0"),
    Command("PUBSUB NUMPAT", "PubSub", "2.8.0"),
    Command("PUBSUB NUMSUB", "PubSub", "2.8.0"),
    Command("PUNSUBSCRIBE", "PubSub", "2.0.0"),
    Command("SUBSCRIBE", "PubSub", "2.0.0"),
    Command("UNSUBSCRIBE", "PubSub", "2.0.0"),
]

COMMANDS: dict[str, Command] = {c.name: c for c in _TABLE}

# Pseudo command covering a whole pipeline flush
PIPELINE = Command("PIPELINE", "Pipeline")


def get_command(name: str) -> Command:
    """Look up a command by name (case-insensitive).

    Raises:
        KeyError: if the command is not in the table.
    """
    return COMMANDS[name.upper()]
