"""clicompat - backwards-compatibility harness for command-line tools."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("clicompat")
except PackageNotFoundError:
    __version__ = "0.0.0.dev0"  # Fallback for source checkouts without metadata

from .errors import LaunchFailure, MatchFailure, NonZeroExit, StepFailure, TimeoutFailure
from .matchers import (
    MatchResult,
    OutputPredicate,
    contain_substring,
    equal,
    expect,
    match_regexp,
    run_successfully,
    run_successfully_with_output_string,
)
from .runner import Command, CommandSpec, ProcessSession, SessionState, new_cmd
from .scenario import Scenario, ScenarioStep, StepOutcome

__all__ = [
    "__version__",
    # Harness
    "Command",
    "CommandSpec",
    "new_cmd",
    "ProcessSession",
    "SessionState",
    # Matchers
    "MatchResult",
    "OutputPredicate",
    "contain_substring",
    "equal",
    "match_regexp",
    "expect",
    "run_successfully",
    "run_successfully_with_output_string",
    # Scenario
    "Scenario",
    "ScenarioStep",
    "StepOutcome",
    # Errors
    "StepFailure",
    "LaunchFailure",
    "TimeoutFailure",
    "NonZeroExit",
    "MatchFailure",
]
