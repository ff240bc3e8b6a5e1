"""Matchers - read-only predicates over process sessions.

A matcher maps a ProcessSession to a MatchResult. It waits for the session to
become terminal before deciding, and never changes the session. A Command
may be passed instead of a session, in which case it is launched first.

Usage:
    expect(cmd, run_successfully())
    expect(cmd, run_successfully_with_output_string(contain_substring(name)))
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Protocol, Union

from .errors import MatchFailure, StepFailure, failure_from_session
from .runner.command import Command
from .runner.session import ProcessSession, SessionState

Actual = Union[ProcessSession, Command]


@dataclass(frozen=True)
class MatchResult:
    """Outcome of one matcher evaluation."""

    success: bool
    message: str = ""
    failure: StepFailure | None = None

    def __bool__(self) -> bool:
        return self.success


class Matcher(Protocol):
    description: str

    def match(self, actual: Actual) -> MatchResult: ...


@dataclass(frozen=True)
class OutputPredicate:
    """A named predicate over captured stdout text."""

    description: str
    check: Callable[[str], bool]

    def __call__(self, text: str) -> bool:
        return bool(self.check(text))


def contain_substring(substring: str) -> OutputPredicate:
    return OutputPredicate(f"contain substring {substring!r}", lambda text: substring in text)


def equal(expected: str) -> OutputPredicate:
    return OutputPredicate(f"equal {expected!r}", lambda text: text == expected)


def match_regexp(pattern: str) -> OutputPredicate:
    compiled = re.compile(pattern)
    return OutputPredicate(
        f"match regexp {pattern!r}", lambda text: compiled.search(text) is not None
    )


def _as_predicate(predicate: OutputPredicate | Callable[[str], bool]) -> OutputPredicate:
    if isinstance(predicate, OutputPredicate):
        return predicate
    if callable(predicate):
        name = getattr(predicate, "__name__", None) or repr(predicate)
        return OutputPredicate(f"satisfy {name}", predicate)
    raise TypeError(f"Expected a predicate over str, got {type(predicate).__name__}")


def _resolve(actual: Actual) -> ProcessSession:
    if isinstance(actual, Command):
        return actual.run()
    if isinstance(actual, ProcessSession):
        return actual
    raise TypeError(f"Expected a Command or ProcessSession, got {type(actual).__name__}")


class RunSuccessfully:
    """Succeeds iff the session completed with exit code 0."""

    description = "run successfully"

    def match(self, actual: Actual) -> MatchResult:
        session = _resolve(actual)
        state = session.wait()
        if state is SessionState.COMPLETED and session.exit_code() == 0:
            return MatchResult(True, f"{session.spec} ran successfully")

        failure = failure_from_session(session)
        return MatchResult(False, str(failure), failure)


class RunSuccessfullyWithOutputString:
    """Succeeds iff RunSuccessfully does and stdout satisfies the predicate."""

    def __init__(self, predicate: OutputPredicate | Callable[[str], bool]):
        self.predicate = _as_predicate(predicate)
        self.description = f"run successfully with output that should {self.predicate.description}"

    def match(self, actual: Actual) -> MatchResult:
        session = _resolve(actual)
        result = RunSuccessfully().match(session)
        if not result:
            return result

        output = session.stdout.text()
        if self.predicate(output):
            return MatchResult(True, f"{session.spec} output satisfied {self.predicate.description}")

        failure = MatchFailure(
            message=f"Expected stdout to {self.predicate.description}",
            command=str(session.spec),
            status=session.status_marker(),
            exit_code=session.exit_code(),
            stdout=output,
            stderr=session.stderr.text(),
            predicate=self.predicate.description,
        )
        return MatchResult(False, str(failure), failure)


def run_successfully() -> RunSuccessfully:
    return RunSuccessfully()


def run_successfully_with_output_string(
    predicate: OutputPredicate | Callable[[str], bool],
) -> RunSuccessfullyWithOutputString:
    return RunSuccessfullyWithOutputString(predicate)


def expect(actual: Actual, matcher: Matcher, step: str | None = None) -> MatchResult:
    """Evaluate ``matcher`` and raise its StepFailure if it does not succeed."""
    result = matcher.match(actual)
    if not result:
        failure = result.failure or StepFailure(message=result.message)
        raise replace(failure, step=step)
    return result
