"""Tests for the command metadata table."""

import pytest

from django_redisson.commands import COMMANDS, PIPELINE, Command, get_command
from django_redisson.probe import Version


class TestCommandTable:
    def test_lookup_is_case_insensitive(self):
        assert get_command("get") is get_command("GET")

    def test_unknown(self):
        with pytest.raises(KeyError):
            get_command("NOPE")

    def test_names_are_unique_keys(self):
        assert all(name == command.name for name, command in COMMANDS.items())

    @pytest.mark.parametrize("name", ["KEYS", "FLUSHALL", "FLUSHDB"])
    def test_forbidden(self, name):
        assert get_command(name).forbid is True

    @pytest.mark.parametrize(
        ("name", "since"),
        [("SETEX", "2.6.12"), ("SETNX", "2.6.12"), ("PSETEX", "2.6.12"), ("HMSET", "4.0.0"), ("GEORADIUS", "6.2.0")],
    )
    def test_deprecated(self, name, since):
        command = get_command(name)
        assert command.warn_version == Version.parse(since)
        assert command.instead

    def test_pipeline_is_not_a_server_command(self):
        assert "PIPELINE" not in COMMANDS
        assert PIPELINE.group == "Pipeline"


class TestCommand:
    def test_driver_method(self):
        assert get_command("DEL").driver_method == "delete"
        assert get_command("SCRIPT LOAD").driver_method == "script_load"
        assert get_command("ZRANGEBYSCORE").driver_method == "zrangebyscore"

    def test_versions(self):
        command = Command("GETEX", "String", "6.2.0")
        assert command.required_version == Version(6, 2, 0)
        assert command.warn_version is None

    def test_str(self):
        assert str(get_command("get")) == "GET"
