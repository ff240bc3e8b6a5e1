"""Scenario - strictly sequential, fail-fast launch-and-assert steps.

A Scenario owns the resources acquired for a run (scratch directories and any
registered cleanup callbacks) and releases them exactly once when the
scenario closes, whether the steps finished or one of them failed.

Usage:
    with Scenario("backwards-compatibility") as scenario:
        workdir = scenario.temp_dir("eksctl")
        scenario.step("downloading a previous release", download_cmd)
        scenario.step("fetching the cluster", get_cmd,
                      run_successfully_with_output_string(contain_substring(name)))
"""

from __future__ import annotations

import shutil
import tempfile
from collections.abc import Callable, Iterable
from contextlib import ExitStack
from dataclasses import dataclass, field, replace
from pathlib import Path
from types import TracebackType
from typing import Any

from .errors import StepFailure
from .matchers import Matcher, run_successfully
from .runner.command import Command
from .runner.session import ProcessSession, SessionState
from .shared.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ScenarioStep:
    """One named launch-and-assert unit.

    ``command`` may be a zero-argument callable so that the command is built
    immediately before launch, from results of earlier steps.
    """

    name: str
    command: Command | Callable[[], Command]
    matcher: Matcher = field(default_factory=run_successfully)

    def build(self) -> Command:
        if isinstance(self.command, Command):
            return self.command
        return self.command()


@dataclass(frozen=True)
class StepOutcome:
    """Record of a finished step. The session itself is not retained."""

    name: str
    passed: bool
    state: SessionState
    exit_code: int | None
    duration: float | None
    message: str = ""


def _remove_dir(path: Path) -> None:
    # Already-removed directories are fine; anything else propagates.
    if path.exists():
        shutil.rmtree(path)


class Scenario:
    """Runs steps in order, stopping at the first failure."""

    def __init__(self, name: str):
        self.name = name
        self.outcomes: list[StepOutcome] = []
        self._cleanup = ExitStack()
        self._closed = False
        self._log = logger.bind(scenario=name)

    def __enter__(self) -> Scenario:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        """Release every owned resource. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._log.info("scenario_cleanup")
        self._cleanup.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def temp_dir(self, prefix: str = "clicompat") -> Path:
        """Create a scratch directory removed when the scenario closes."""
        self._ensure_open()
        path = Path(tempfile.mkdtemp(prefix=f"{prefix}-"))
        self._cleanup.callback(_remove_dir, path)
        self._log.debug("temp_dir_created", path=str(path))
        return path

    def add_cleanup(self, callback: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        """Register a callback run at close, in reverse registration order."""
        self._ensure_open()
        self._cleanup.callback(callback, *args, **kwargs)

    def step(
        self,
        name: str,
        command: Command,
        matcher: Matcher | None = None,
    ) -> ProcessSession:
        """Launch ``command``, evaluate ``matcher`` on its session.

        Returns:
            The terminal session, for callers that need its output.

        Raises:
            StepFailure: The matcher did not succeed. The failure names the step.
        """
        self._ensure_open()
        matcher = matcher or run_successfully()
        log = self._log.bind(step=name)
        log.info("step_started", command=str(command))

        session = command.run()
        result = matcher.match(session)
        self.outcomes.append(
            StepOutcome(
                name=name,
                passed=result.success,
                state=session.state,
                exit_code=session.exit_code(),
                duration=session.duration,
                message="" if result.success else result.message,
            )
        )

        if not result:
            log.error("step_failed", status=session.status_marker())
            failure = result.failure or StepFailure(message=result.message)
            raise replace(failure, step=name)

        log.info("step_passed", duration=session.duration)
        return session

    def run(self, steps: Iterable[ScenarioStep]) -> list[StepOutcome]:
        """Run ``steps`` in order. The first failure aborts the rest."""
        for step in steps:
            self.step(step.name, step.build(), step.matcher)
        return list(self.outcomes)

    @property
    def failed_step(self) -> str | None:
        for outcome in self.outcomes:
            if not outcome.passed:
                return outcome.name
        return None

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError(f"Scenario {self.name!r} is already closed")
