"""CLI output formatting helpers."""

from __future__ import annotations

from typing import Any

import click
import yaml

from .config import ENV_VARS, CompatSettings
from .errors import StepFailure
from .matchers import MatchResult
from .runner.session import ProcessSession
from .scenario import StepOutcome


def session_to_dict(session: ProcessSession, result: MatchResult | None = None) -> dict[str, Any]:
    """Serialize a terminal session for JSON output."""
    data: dict[str, Any] = {
        "command": str(session.spec),
        "state": session.state.value,
        "exit_code": session.exit_code(),
        "duration": session.duration,
        "stdout": session.stdout.text(),
        "stderr": session.stderr.text(),
    }
    if session.launch_error is not None:
        data["launch_error"] = str(session.launch_error)
    if result is not None:
        data["passed"] = result.success
        if result.failure is not None:
            data["failure"] = result.failure.to_dict()
    return data


def outcome_to_dict(outcome: StepOutcome) -> dict[str, Any]:
    return {
        "name": outcome.name,
        "passed": outcome.passed,
        "state": outcome.state.value,
        "exit_code": outcome.exit_code,
        "duration": outcome.duration,
    }


def print_session_report(session: ProcessSession, result: MatchResult) -> None:
    """Print the outcome of a single harness invocation.

    Args:
        session: Terminal session
        result: Matcher result for the session
    """
    click.echo(f"Command: {session.spec}")
    click.echo(f"Status: {session.status_marker()}")
    if session.duration is not None:
        click.echo(f"Duration: {session.duration:.2f}s")
    click.echo()
    click.echo("--- stdout ---")
    click.echo(session.stdout.text(), nl=False)
    click.echo("--- stderr ---")
    click.echo(session.stderr.text(), nl=False)
    click.echo()

    if result:
        click.echo("✓ Passed")
    elif result.failure is not None:
        click.echo(f"✗ {result.failure.message}")
    else:
        click.echo(f"✗ {result.message}")


def print_outcomes(scenario_name: str, outcomes: list[StepOutcome]) -> None:
    """Print one line per finished step."""
    click.echo(f"Scenario: {scenario_name}\n")
    for outcome in outcomes:
        mark = "✓" if outcome.passed else "✗"
        duration = f" ({outcome.duration:.1f}s)" if outcome.duration is not None else ""
        click.echo(f"  {mark} {outcome.name}{duration}")


def print_failure(failure: StepFailure) -> None:
    """Print a step failure with its full diagnostic payload."""
    click.echo(f"\nFAILED: {failure.step or 'step'}", err=True)
    click.echo(str(failure), err=True)


def print_settings(settings: CompatSettings) -> None:
    """Print effective settings as YAML, each line annotated with its source."""
    click.echo("clicompat configuration:")
    yaml_str = yaml.dump(settings.as_dict(), default_flow_style=False, sort_keys=False)
    for line in yaml_str.splitlines():
        key = line.split(":", 1)[0]
        click.echo(f"  {line}  # {settings.get_source(key)}")
    click.echo(f"\nEnvironment overrides: {', '.join(ENV_VARS.values())}")
