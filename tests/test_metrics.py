"""Tests for metric registration."""

from unittest.mock import MagicMock

from prometheus_client import CollectorRegistry

from django_redisson import metrics


class TestRegisterMetrics:
    def test_registers_every_metric_once(self):
        register = MagicMock()
        assert metrics.register_metrics(register) is True
        assert register.call_count == len(metrics.ALL_METRICS)
        assert metrics.register_metrics(register) is False
        assert register.call_count == len(metrics.ALL_METRICS)

    def test_separate_registries(self):
        first, second = CollectorRegistry(), CollectorRegistry()
        assert metrics.register_metrics(first.register) is True
        assert metrics.register_metrics(second.register) is True

    def test_exposed_names(self):
        registry = CollectorRegistry()
        metrics.register_metrics(registry.register)
        metrics.EXEC_ERROR.labels("String", "GET").inc(0)
        names = {m.name for m in registry.collect()}
        assert {
            "redis_exec_timing",
            "redis_exec_error",
            "redis_cache_hits",
            "redis_cache_miss",
            "redis_delay_poll_error",
            "redis_delay_reclaim_error",
            "redis_delay_reclaim",
        } <= names
