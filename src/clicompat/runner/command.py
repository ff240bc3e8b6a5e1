"""Command - fluent construction of external process invocations.

A Command wraps an immutable CommandSpec. Every ``with_*`` call returns a new
Command, so a base command can be shared and extended without one caller's
additions leaking into another's.

Usage:
    get = Command("eksctl").with_args("get").with_timeout(60)
    session = get.with_args("cluster", "--name", name).run()
"""

from __future__ import annotations

import os
import shlex
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import timedelta
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .session import ProcessSession


def _empty_env() -> Mapping[str, str]:
    return MappingProxyType({})


@dataclass(frozen=True)
class CommandSpec:
    """Immutable description of one external invocation."""

    path: str
    args: tuple[str, ...] = ()
    env: Mapping[str, str] = field(default_factory=_empty_env)
    timeout: float | None = None  # seconds; None waits forever
    stdin: bytes | None = None
    cwd: str | None = None

    @property
    def argv(self) -> list[str]:
        return [self.path, *self.args]

    def __str__(self) -> str:
        return shlex.join(self.argv)


class Command:
    """Fluent builder for a CommandSpec."""

    def __init__(self, path: str | os.PathLike[str]):
        self._spec = CommandSpec(path=os.fspath(path))

    @classmethod
    def from_spec(cls, spec: CommandSpec) -> Command:
        command = cls.__new__(cls)
        command._spec = spec
        return command

    @property
    def spec(self) -> CommandSpec:
        return self._spec

    def _replace(self, **changes: Any) -> Command:
        return Command.from_spec(replace(self._spec, **changes))

    def with_args(self, *args: str | os.PathLike[str]) -> Command:
        """Return a command with ``args`` appended."""
        return self._replace(args=self._spec.args + tuple(os.fspath(a) for a in args))

    def without_arg(self, arg: str, value: str | None = None) -> Command:
        """Return a command with ``arg`` removed.

        When ``value`` is given only ``arg value`` pairs are removed, together.
        """
        remaining: list[str] = []
        args = self._spec.args
        i = 0
        while i < len(args):
            if args[i] == arg:
                if value is None:
                    i += 1
                    continue
                if i + 1 < len(args) and args[i + 1] == value:
                    i += 2
                    continue
            remaining.append(args[i])
            i += 1
        return self._replace(args=tuple(remaining))

    def with_env(self, *assignments: str, **variables: str) -> Command:
        """Return a command with extra environment variables.

        Accepts ``"KEY=VALUE"`` strings and/or keyword pairs. Later values win
        on duplicate keys. The variables are merged onto the inherited
        environment at launch.

        Raises:
            ValueError: If an assignment has no ``=`` or an empty key.
        """
        env = dict(self._spec.env)
        for assignment in assignments:
            key, sep, value = assignment.partition("=")
            if not sep or not key:
                raise ValueError(
                    f"Invalid environment assignment: {assignment!r}. Expected KEY=VALUE"
                )
            env[key] = value
        for key, value in variables.items():
            env[key] = str(value)
        return self._replace(env=MappingProxyType(env))

    def with_timeout(self, timeout: float | timedelta) -> Command:
        """Return a command that is killed if it runs longer than ``timeout``.

        Raises:
            ValueError: If the timeout is not positive.
        """
        seconds = timeout.total_seconds() if isinstance(timeout, timedelta) else float(timeout)
        if seconds <= 0:
            raise ValueError(f"Timeout must be positive, got {seconds}")
        return self._replace(timeout=seconds)

    def with_stdin(self, data: bytes | str) -> Command:
        if isinstance(data, str):
            data = data.encode("utf-8")
        return self._replace(stdin=data)

    def with_dir(self, path: str | os.PathLike[str]) -> Command:
        return self._replace(cwd=os.fspath(path))

    def run(self) -> ProcessSession:
        """Launch the command and return its session without waiting."""
        from .session import ProcessSession

        return ProcessSession.start(self._spec)

    def __str__(self) -> str:
        return str(self._spec)

    def __repr__(self) -> str:
        return f"Command({str(self._spec)!r}, timeout={self._spec.timeout})"


def new_cmd(path: str | os.PathLike[str]) -> Command:
    """Create a command with no arguments, no extra environment and no timeout."""
    return Command(path)
