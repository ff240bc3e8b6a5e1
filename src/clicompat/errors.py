"""Failure types for scenario steps.

Every terminal non-success outcome of a step maps to one StepFailure
subclass carrying the full diagnostic payload: status marker, exit code,
stdout and stderr. StepFailure derives from AssertionError so test runners
report it as a failed assertion rather than an error.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar

if TYPE_CHECKING:
    from .runner.session import ProcessSession


@dataclass(eq=False)
class StepFailure(AssertionError):
    """Base class for step failures."""

    message: str
    step: str | None = None
    command: str | None = None
    status: str | None = None
    exit_code: int | None = None
    stdout: str = ""
    stderr: str = ""

    kind: ClassVar[str] = "step_failure"

    def __str__(self) -> str:
        header = f"[{self.step}] {self.message}" if self.step else self.message
        lines = [header]
        if self.command:
            lines.append(f"Command: {self.command}")
        if self.status:
            lines.append(f"Status: {self.status}")
        lines.append(f"--- stdout ---\n{self.stdout}")
        lines.append(f"--- stderr ---\n{self.stderr}")
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "step": self.step,
            "message": self.message,
            "command": self.command,
            "status": self.status,
            "exit_code": self.exit_code,
            "stdout": self.stdout,
            "stderr": self.stderr,
        }


@dataclass(eq=False)
class LaunchFailure(StepFailure):
    """The binary could not be located or executed."""

    kind: ClassVar[str] = "launch_failure"


@dataclass(eq=False)
class TimeoutFailure(StepFailure):
    """The process exceeded its timeout and was killed."""

    kind: ClassVar[str] = "timeout"


@dataclass(eq=False)
class NonZeroExit(StepFailure):
    """The process ran to completion but exited non-zero."""

    kind: ClassVar[str] = "non_zero_exit"


@dataclass(eq=False)
class MatchFailure(StepFailure):
    """The process succeeded but its output did not satisfy the predicate."""

    predicate: str | None = None

    kind: ClassVar[str] = "match_failure"

    def __str__(self) -> str:
        text = super().__str__()
        if self.predicate:
            text += f"\nPredicate: {self.predicate}"
        return text

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["predicate"] = self.predicate
        return data


def failure_from_session(
    session: ProcessSession,
    message: str | None = None,
    step: str | None = None,
) -> StepFailure:
    """Map a terminal, unsuccessful session to the matching StepFailure.

    Blocks until the session is terminal.
    """
    from .runner.session import SessionState

    state = session.wait()
    exit_code = session.exit_code()
    fields: dict[str, Any] = {
        "step": step,
        "command": str(session.spec),
        "status": session.status_marker(),
        "exit_code": exit_code,
        "stdout": session.stdout.text(),
        "stderr": session.stderr.text(),
    }

    if state is SessionState.LAUNCH_FAILED:
        return LaunchFailure(
            message=message or f"Failed to launch {session.spec.path}: {session.launch_error}",
            **fields,
        )
    if state is SessionState.TIMED_OUT:
        return TimeoutFailure(
            message=message or f"Command timed out after {session.spec.timeout:g}s",
            **fields,
        )
    return NonZeroExit(
        message=message or f"Command exited with code {exit_code}",
        **fields,
    )
