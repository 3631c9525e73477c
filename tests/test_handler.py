"""Tests for the development-mode gatekeeper and the metrics tap."""

import logging

import pytest

from django_redisson.commands import Command, get_command
from django_redisson.conf import Conf
from django_redisson.exceptions import (
    CommandForbiddenError,
    CommandVersionError,
    CrossSlotError,
    NilError,
)
from django_redisson.handler import (
    Handler,
    deprecation_message,
    keys_slot,
    with_skip_check,
    with_sub_command_name,
)
from django_redisson.probe import Version


def make_handler(version: str = "7.2.0", cluster: bool = False, **options) -> Handler:
    handler = Handler(Conf(**options))
    handler.version = Version.parse(version)
    handler.cluster = cluster
    return handler


def sample(registry, name: str, labels: dict) -> float:
    return registry.get_sample_value(name, labels) or 0.0


class TestPreflight:
    """Development mode rejects misuse before the driver is called."""

    def test_forbidden_command(self):
        with pytest.raises(CommandForbiddenError, match=r"\[KEYS\]: redis command are not allowed"):
            make_handler().before(get_command("KEYS"))

    def test_forbidden_allowed_in_production(self):
        make_handler(development=False).before(get_command("FLUSHDB"))

    def test_skip_check(self):
        with with_skip_check():
            make_handler().before(get_command("KEYS"))

    def test_skip_check_is_scoped(self):
        handler = make_handler()
        with with_skip_check():
            pass
        with pytest.raises(CommandForbiddenError):
            handler.before(get_command("KEYS"))

    def test_version_too_old(self):
        with pytest.raises(CommandVersionError) as exc_info:
            make_handler("6.0.9").before(get_command("GETDEL"))
        assert exc_info.value.required == "6.2.0"
        assert "6.0.9" in str(exc_info.value)

    def test_version_boundary(self):
        make_handler("6.2.0").before(get_command("GETDEL"))

    def test_forbid_checked_before_version(self):
        command = Command("NEWKEYS", "Generic", "9.0.0", forbid=True)
        with pytest.raises(CommandForbiddenError):
            make_handler().before(command)

    def test_cross_slot(self):
        with pytest.raises(CrossSlotError) as exc_info:
            make_handler(cluster=True).before(get_command("MGET"), ["a", "b"])
        assert exc_info.value.keys == ["a", "b"]

    def test_same_hash_tag(self):
        make_handler(cluster=True).before(get_command("MGET"), ["{user:1}:a", "{user:1}:b"])

    def test_cross_slot_ignored_outside_cluster(self):
        make_handler(cluster=False).before(get_command("MGET"), ["a", "b"])

    def test_lazy_keys_only_evaluated_in_cluster(self):
        calls = []

        def keys():
            calls.append(1)
            return ["a"]

        make_handler(cluster=False).before(get_command("MGET"), keys)
        assert calls == []
        make_handler(cluster=True).before(get_command("MGET"), keys)
        assert calls == [1]


class TestDeprecation:
    """Deprecated commands log a warning once per process."""

    def test_warns_once(self, caplog, reset_warnings):
        handler = make_handler("7.0.0")
        with caplog.at_level(logging.WARNING, logger="django_redisson.handler"):
            handler.before(get_command("SETEX"))
            handler.before(get_command("SETEX"))
        messages = [r.getMessage() for r in caplog.records if "[SETEX]" in r.getMessage()]
        assert len(messages) == 1
        assert "SET with EX, PX or NX options" in messages[0]

    def test_warns_from_exact_version(self, caplog, reset_warnings):
        with caplog.at_level(logging.WARNING, logger="django_redisson.handler"):
            make_handler("4.0.0").before(get_command("HMSET"))
        assert "[HMSET]" in caplog.text

    def test_no_warning_before_deprecation(self, caplog, reset_warnings):
        with caplog.at_level(logging.WARNING, logger="django_redisson.handler"):
            make_handler("6.0.0").before(get_command("ZRANGEBYSCORE"))
        assert "[ZRANGEBYSCORE]" not in caplog.text

    def test_warn_every_time(self, caplog, reset_warnings):
        command = Command("OLDCMD", "Generic", warn_since="1.0.0", warning="deprecated", warn_once=False)
        handler = make_handler()
        with caplog.at_level(logging.WARNING, logger="django_redisson.handler"):
            handler.before(command)
            handler.before(command)
        assert caplog.text.count("[OLDCMD]") == 2

    def test_message_format(self):
        command = Command("OLD", "Generic", warning="deprecated", instead="NEW", etc="see docs")
        assert deprecation_message(command) == (
            "[OLD]: deprecated \n\t\t use 'NEW' instead. \n\t\t see docs, etc."
        )


class TestMetricsTap:
    LABELS = {"command": "String", "s_command": "GET"}

    def test_success_observes_latency(self, registry):
        handler = make_handler()
        before = sample(registry, "redis_exec_timing_count", self.LABELS)
        handler.after(handler.before(get_command("GET")))
        assert sample(registry, "redis_exec_timing_count", self.LABELS) == before + 1

    def test_error_counted(self, registry):
        handler = make_handler()
        before = sample(registry, "redis_exec_error_total", self.LABELS)
        handler.after(handler.before(get_command("GET")), RuntimeError("boom"))
        assert sample(registry, "redis_exec_error_total", self.LABELS) == before + 1

    def test_nil_is_not_an_error(self, registry):
        handler = make_handler()
        errors = sample(registry, "redis_exec_error_total", self.LABELS)
        timing = sample(registry, "redis_exec_timing_count", self.LABELS)
        handler.after(handler.before(get_command("GET")), NilError())
        assert sample(registry, "redis_exec_error_total", self.LABELS) == errors
        assert sample(registry, "redis_exec_timing_count", self.LABELS) == timing + 1

    def test_custom_silent_error(self, registry):
        handler = make_handler()
        handler.silent_error = lambda e: isinstance(e, KeyError)
        before = sample(registry, "redis_exec_error_total", self.LABELS)
        handler.after(handler.before(get_command("GET")), KeyError("x"))
        assert sample(registry, "redis_exec_error_total", self.LABELS) == before

    def test_monitor_disabled(self, registry):
        handler = make_handler(enable_monitor=False)
        ctx = handler.before(get_command("GET"))
        assert ctx.start is None
        before = sample(registry, "redis_exec_timing_count", self.LABELS)
        handler.after(ctx)
        assert sample(registry, "redis_exec_timing_count", self.LABELS) == before

    def test_sub_command_label(self, registry):
        handler = make_handler()
        labels = {"command": "Scripting", "s_command": "delay-add"}
        before = sample(registry, "redis_exec_timing_count", labels)
        with with_sub_command_name("delay-add"):
            ctx = handler.before(get_command("EVALSHA"))
        handler.after(ctx)
        assert ctx.sub_command == "delay-add"
        assert sample(registry, "redis_exec_timing_count", labels) == before + 1

    def test_cache_counters(self, registry):
        handler = make_handler()
        ctx = handler.before(get_command("GET"))
        hits = sample(registry, "redis_cache_hits_total", self.LABELS)
        miss = sample(registry, "redis_cache_miss_total", self.LABELS)
        handler.cache(ctx, hit=True)
        handler.cache(ctx, hit=False)
        handler.cache(ctx, hit=False)
        assert sample(registry, "redis_cache_hits_total", self.LABELS) == hits + 1
        assert sample(registry, "redis_cache_miss_total", self.LABELS) == miss + 2


def test_keys_slot():
    assert keys_slot("foo") == 12182
    assert keys_slot(b"foo") == 12182
    assert keys_slot("{foo}:bar") == keys_slot("foo")
