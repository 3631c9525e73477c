"""Leaky bucket rate limiter backed by a Redis hash.

The bucket at ``key`` holds at most ``capacity`` units and leaks
``operations`` units every ``seconds``. Each :meth:`Funnel.watering` call
tries to pour ``quota`` units in::

    funnel = client.new_funnel("rate:user:42", capacity=10, operations=5, seconds=1)
    state = funnel.watering(1)
    if not state.ready:
        time.sleep(state.interval)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, NamedTuple

from django_redisson.script import LuaScript
from django_redisson.types import to_seconds

if TYPE_CHECKING:
    from django_redisson.client.base import BaseClient
    from django_redisson.types import ExpiryT, KeyT

FUNNEL_SCRIPT = LuaScript(
    name="funnel",
    script="""
local function now()
    local ts = redis.call('TIME')
    return tostring(ts[1] + ts[2] / 1000000)
end

local Funnel = {}

function Funnel:new(o, capacity, operations, seconds, left_quota, leaking_ts)
    o = o or {}
    setmetatable(o, self)
    self.__index = self
    self.capacity = capacity
    self.operations = operations
    self.seconds = seconds
    self.left_quota = left_quota
    self.leaking_ts = leaking_ts
    self.leaking_rate = operations / seconds
    return o
end

function Funnel:make_space(quota)
    local now_ts = now()
    local delta_ts = now_ts - self.leaking_ts
    local delta_quota = delta_ts * self.leaking_rate
    if (self.left_quota + delta_quota) < quota then
        return
    else
        self.left_quota = self.left_quota + delta_quota
        if self.left_quota > self.capacity then
            self.left_quota = self.capacity
        end
        self.leaking_ts = now_ts
    end
end

function Funnel:watering(quota)
    self:make_space(quota)
    if self.left_quota >= quota then
        self.left_quota = self.left_quota - quota
        return
            0,
            self.capacity,
            self.left_quota,
            tostring(-1.0),
            tostring((self.capacity - self.left_quota) / self.leaking_rate)
    else
        return
            1,
            self.capacity,
            self.left_quota,
            tostring(quota / self.leaking_rate),
            tostring((self.capacity - self.left_quota) / self.leaking_rate)
    end
end

local key = KEYS[1]
local capacity = tonumber(ARGV[1])
local operations = tonumber(ARGV[2])
local seconds = tonumber(ARGV[3])
local quota = tonumber(ARGV[4])

local left_quota
local leaking_ts
local cache = redis.call('HMGET', key, 'left_quota', 'leaking_ts')
if cache[1] ~= false then
    left_quota = tonumber(cache[1])
    if left_quota > capacity then
        left_quota = capacity
    end
    leaking_ts = cache[2]
else
    left_quota = 0
    leaking_ts = now()
end

local funnel = Funnel:new(nil, capacity, operations, seconds, left_quota, leaking_ts)
local ready, capacity, left_quota, interval, empty_time = funnel:watering(quota)

redis.call('HMSET', key,
    'left_quota', funnel.left_quota,
    'leaking_ts', funnel.leaking_ts,
    'capacity', funnel.capacity,
    'operations', funnel.operations,
    'seconds', funnel.seconds
)
redis.call('SADD', 'funnel:keys', key)

return {ready, capacity, left_quota, interval, empty_time}""",
)


class LeakyBucketState(NamedTuple):
    """Outcome of one :meth:`Funnel.watering` call.

    Attributes:
        ready: Whether the quota fit into the bucket.
        capacity: Bucket capacity.
        left_quota: Quota left after watering.
        interval: Seconds to wait until ``quota`` fits, -1 when ready.
        empty_time: Seconds until the bucket is empty.
    """

    ready: bool
    capacity: int
    left_quota: int
    interval: float
    empty_time: float


class Funnel:
    def __init__(self, client: BaseClient, key: KeyT, capacity: int, operations: int, seconds: ExpiryT) -> None:
        period = to_seconds(seconds)
        self.key = key
        self.capacity = capacity
        self.operations = operations
        self.seconds = period if period > 0 else 1.0
        self._script = client.create_script(FUNNEL_SCRIPT)

    def watering(self, quota: int) -> LeakyBucketState:
        """Try to pour ``quota`` units into the bucket."""
        reply = self._script.run(
            keys=[self.key],
            args=[self.capacity, self.operations, self.seconds, quota],
        )
        return _parse_state(reply)


def _parse_state(reply: Any) -> LeakyBucketState:
    ready, capacity, left_quota, interval, empty_time = reply
    return LeakyBucketState(
        ready=int(ready) == 0,
        capacity=int(capacity),
        left_quota=int(left_quota),
        interval=float(_as_str(interval)),
        empty_time=float(_as_str(empty_time)),
    )


def _as_str(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode()
    return str(value)
