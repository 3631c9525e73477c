"""Tests for the leaky bucket rate limiter."""

from datetime import timedelta

import pytest

from django_redisson.funnel import Funnel, LeakyBucketState, _parse_state


class TestParseState:
    def test_ready(self):
        assert _parse_state([0, 10, 9, b"-1", b"0.2"]) == LeakyBucketState(
            ready=True,
            capacity=10,
            left_quota=9,
            interval=-1.0,
            empty_time=0.2,
        )

    def test_not_ready(self):
        state = _parse_state([1, 10, 0, "0.5", "2"])
        assert state.ready is False
        assert state.interval == 0.5
        assert state.empty_time == 2.0


class TestFunnel:
    def test_seconds_default(self, client):
        funnel = client.new_funnel("rate", capacity=10, operations=5, seconds=0)
        assert funnel.seconds == 1.0

    def test_timedelta_seconds(self, client):
        assert client.new_funnel("rate", 10, 5, timedelta(minutes=1)).seconds == 60.0

    def test_watering_runs_script(self, client, mocker):
        funnel = Funnel(client, "rate:user", capacity=10, operations=5, seconds=2)
        run = mocker.patch.object(funnel._script, "run", return_value=[0, 10, 7, b"-1", b"1.2"])

        state = funnel.watering(3)

        run.assert_called_once_with(keys=["rate:user"], args=[10, 5, 2.0, 3])
        assert state.ready is True
        assert state.left_quota == 7

    def test_empty_bucket_has_no_quota(self, client):
        """A fresh bucket starts with no quota and fills as it leaks."""
        funnel = client.new_funnel("rate:new", capacity=10, operations=5, seconds=1)

        state = funnel.watering(1)

        assert state.ready is False
        assert state.capacity == 10
        assert state.left_quota == 0
        assert state.interval == pytest.approx(0.2)
        assert client.sismember("funnel:keys", "rate:new")
