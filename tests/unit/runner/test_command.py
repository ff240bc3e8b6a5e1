"""Unit tests for Command and CommandSpec."""

import dataclasses
from datetime import timedelta
from pathlib import Path

import pytest

from clicompat.runner.command import Command, CommandSpec, new_cmd


class TestCommandBuilder:
    """Tests for the fluent builder."""

    def test_new_command_is_empty(self):
        """A new command has no args, no env overrides and no timeout."""
        spec = new_cmd("eksctl").spec

        assert spec.path == "eksctl"
        assert spec.args == ()
        assert dict(spec.env) == {}
        assert spec.timeout is None
        assert spec.stdin is None
        assert spec.cwd is None

    def test_accepts_path_objects(self):
        """Paths are converted to strings."""
        cmd = Command(Path("/opt/bin/eksctl")).with_args(Path("/tmp/out"))

        assert cmd.spec.path == "/opt/bin/eksctl"
        assert cmd.spec.args == ("/tmp/out",)

    def test_with_args_appends(self):
        """with_args keeps argument order across calls."""
        cmd = Command("eksctl").with_args("get").with_args("cluster", "--name", "demo")

        assert cmd.spec.args == ("get", "cluster", "--name", "demo")
        assert cmd.spec.argv == ["eksctl", "get", "cluster", "--name", "demo"]

    def test_with_args_returns_new_command(self):
        """Extending a base command never changes the base."""
        base = Command("eksctl").with_args("get").with_timeout(60)
        clusters = base.with_args("cluster")
        nodegroups = base.with_args("nodegroup")

        assert base.spec.args == ("get",)
        assert clusters.spec.args == ("get", "cluster")
        assert nodegroups.spec.args == ("get", "nodegroup")
        assert clusters.spec.timeout == nodegroups.spec.timeout == 60

    def test_spec_is_frozen(self):
        """CommandSpec cannot be mutated."""
        spec = Command("eksctl").spec

        with pytest.raises(dataclasses.FrozenInstanceError):
            spec.path = "other"  # type: ignore[misc]

    def test_str_is_shell_quoted(self):
        """str() renders a copy-pasteable command line."""
        cmd = Command("eksctl").with_args("get", "cluster", "my cluster")

        assert str(cmd) == "eksctl get cluster 'my cluster'"
        assert str(cmd.spec) == str(cmd)

    def test_from_spec_round_trip(self):
        """A command rebuilt from its spec carries the same spec."""
        spec = CommandSpec(path="eksctl", args=("version",), timeout=5.0)

        assert Command.from_spec(spec).spec is spec


class TestEnvironment:
    """Tests for environment overrides."""

    def test_with_env_assignments(self):
        """KEY=VALUE strings are split on the first '='."""
        cmd = Command("script").with_env("GO_BACK_VERSIONS=2", "DOWNLOAD_DIR=/tmp/x=y")

        assert dict(cmd.spec.env) == {"GO_BACK_VERSIONS": "2", "DOWNLOAD_DIR": "/tmp/x=y"}

    def test_with_env_keywords(self):
        """Keyword pairs are accepted and stringified."""
        cmd = Command("script").with_env(GO_BACK_VERSIONS=2)  # type: ignore[arg-type]

        assert cmd.spec.env["GO_BACK_VERSIONS"] == "2"

    def test_last_write_wins(self):
        """Later values replace earlier ones for the same key."""
        cmd = Command("script").with_env("A=1", "B=1").with_env("A=2").with_env(B="3")

        assert dict(cmd.spec.env) == {"A": "2", "B": "3"}

    def test_env_order_independent(self):
        """Distinct keys give the same env regardless of call order."""
        first = Command("script").with_env("A=1").with_env("B=2")
        second = Command("script").with_env("B=2").with_env("A=1")

        assert dict(first.spec.env) == dict(second.spec.env)

    @pytest.mark.parametrize("assignment", ["NOEQUALS", "=value", ""])
    def test_invalid_assignment(self, assignment):
        """Assignments without a key or '=' are rejected."""
        with pytest.raises(ValueError, match="Expected KEY=VALUE"):
            Command("script").with_env(assignment)

    def test_env_is_read_only(self):
        """A CommandSpec's env mapping cannot be modified in place."""
        cmd = Command("script").with_env("A=1")

        with pytest.raises(TypeError):
            cmd.spec.env["A"] = "2"  # type: ignore[index]

    def test_builder_env_not_shared(self):
        """Branches from one base do not see each other's env."""
        base = Command("script").with_env("A=1")
        left = base.with_env("B=2")
        right = base.with_env("C=3")

        assert dict(base.spec.env) == {"A": "1"}
        assert "C" not in left.spec.env
        assert "B" not in right.spec.env


class TestTimeout:
    """Tests for timeouts."""

    def test_seconds(self):
        assert Command("x").with_timeout(30).spec.timeout == 30.0

    def test_timedelta(self):
        """timedelta values are converted to seconds."""
        assert Command("x").with_timeout(timedelta(minutes=20)).spec.timeout == 1200.0

    @pytest.mark.parametrize("timeout", [0, -1, timedelta(0)])
    def test_non_positive_rejected(self, timeout):
        with pytest.raises(ValueError, match="must be positive"):
            Command("x").with_timeout(timeout)


class TestWithoutArg:
    """Tests for argument removal."""

    def test_removes_flag(self):
        cmd = Command("eksctl").with_args("delete", "--wait", "cluster", "--wait")

        assert cmd.without_arg("--wait").spec.args == ("delete", "cluster")

    def test_removes_flag_with_value(self):
        """Only matching flag/value pairs are removed."""
        cmd = Command("eksctl").with_args("--region", "us-west-2", "--region", "eu-west-1")

        assert cmd.without_arg("--region", "us-west-2").spec.args == ("--region", "eu-west-1")

    def test_missing_arg_is_noop(self):
        cmd = Command("eksctl").with_args("get", "cluster")

        assert cmd.without_arg("--verbose", "4").spec.args == ("get", "cluster")


class TestStdinAndDir:
    """Tests for stdin and working directory."""

    def test_with_stdin_encodes_text(self):
        assert Command("cat").with_stdin("héllo").spec.stdin == "héllo".encode()

    def test_with_stdin_bytes(self):
        assert Command("cat").with_stdin(b"\x00\x01").spec.stdin == b"\x00\x01"

    def test_with_dir(self, tmp_path):
        assert Command("ls").with_dir(tmp_path).spec.cwd == str(tmp_path)
