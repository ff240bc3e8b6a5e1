"""CLI main entry point."""

import json
import re
import sys

import click

from . import __version__
from .compat.backwards import SCENARIO_NAME, CompatConfig, backwards_compatibility_steps
from .config import ENV_VARS, ConfigFileError, load_config, save_config
from .errors import StepFailure
from .formatters import (
    outcome_to_dict,
    print_failure,
    print_outcomes,
    print_session_report,
    print_settings,
    session_to_dict,
)
from .matchers import (
    Matcher,
    contain_substring,
    match_regexp,
    run_successfully,
    run_successfully_with_output_string,
)
from .runner.command import Command
from .scenario import Scenario
from .shared.logging import configure_logging, verbosity_to_level


@click.group()
@click.option("-v", "--verbose", count=True, help="Increase log verbosity")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.option("--log-file", type=click.Path(dir_okay=False), help="Write logs to a file")
@click.pass_context
def cli(ctx: click.Context, verbose: int, json_output: bool, log_file: str | None) -> None:
    """Backwards-compatibility harness for command-line tools."""
    settings = load_config()
    level = verbosity_to_level(verbose) if verbose else settings.log_level
    configure_logging(level, log_file=log_file, json_output=json_output)

    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings
    ctx.obj["json_output"] = json_output


@cli.command()
def version() -> None:
    """Show version information."""
    click.echo(f"clicompat version {__version__}")


@cli.command(
    "exec",
    context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False},
)
@click.option("-t", "--timeout", type=float, help="Kill the command after this many seconds")
@click.option("-e", "--env", "env", multiple=True, help="Extra environment KEY=VALUE")
@click.option("--expect-substring", help="Require stdout to contain this text")
@click.option("--expect-regexp", help="Require stdout to match this pattern")
@click.argument("binary")
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def exec_command(
    ctx: click.Context,
    timeout: float | None,
    env: tuple[str, ...],
    expect_substring: str | None,
    expect_regexp: str | None,
    binary: str,
    args: tuple[str, ...],
) -> None:
    """Run BINARY [ARGS]... through the harness and report the result."""
    if expect_substring and expect_regexp:
        raise click.UsageError("Use only one of --expect-substring and --expect-regexp")

    cmd = Command(binary).with_args(*args)
    try:
        if env:
            cmd = cmd.with_env(*env)
        if timeout is not None:
            cmd = cmd.with_timeout(timeout)
    except ValueError as e:
        raise click.BadParameter(str(e)) from e

    matcher: Matcher
    if expect_substring is not None:
        matcher = run_successfully_with_output_string(contain_substring(expect_substring))
    elif expect_regexp is not None:
        try:
            predicate = match_regexp(expect_regexp)
        except re.error as e:
            raise click.BadParameter(str(e), param_hint="--expect-regexp") from e
        matcher = run_successfully_with_output_string(predicate)
    else:
        matcher = run_successfully()

    session = cmd.run()
    result = matcher.match(session)

    if ctx.obj["json_output"]:
        click.echo(json.dumps(session_to_dict(session, result), indent=2))
    else:
        print_session_report(session, result)

    if not result:
        sys.exit(1)


@cli.command()
@click.option("--binary", help="Current binary under test")
@click.option("--download-script", help="Script that downloads a previous release")
@click.option("--go-back-versions", type=int, help="How many releases back to download")
@click.option("--region", help="Region passed to every command")
@click.option("--cluster-name", help="Cluster name (generated if omitted)")
@click.pass_context
def backwards(
    ctx: click.Context,
    binary: str | None,
    download_script: str | None,
    go_back_versions: int | None,
    region: str | None,
    cluster_name: str | None,
) -> None:
    """Create resources with a previous release, manage them with the current one."""
    settings = ctx.obj["settings"]
    binary = settings.binary if binary is None else binary
    if not binary:
        raise click.UsageError("No binary configured. Pass --binary or set CLICOMPAT_BINARY")

    try:
        config = CompatConfig(
            binary=binary,
            download_script=(
                settings.download_script if download_script is None else download_script
            ),
            go_back_versions=(
                settings.go_back_versions if go_back_versions is None else go_back_versions
            ),
            region=settings.region if region is None else region,
            cluster_name=cluster_name or "",
        )
    except ValueError as e:
        raise click.BadParameter(str(e)) from e

    scenario = Scenario(SCENARIO_NAME)
    failure: StepFailure | None = None
    try:
        with scenario:
            backwards_compatibility_steps(scenario, config)
    except StepFailure as e:
        failure = e

    if ctx.obj["json_output"]:
        report = {
            "scenario": SCENARIO_NAME,
            "cluster_name": config.cluster_name,
            "passed": failure is None,
            "steps": [outcome_to_dict(o) for o in scenario.outcomes],
        }
        if failure is not None:
            report["failure"] = failure.to_dict()
        click.echo(json.dumps(report, indent=2))
    else:
        print_outcomes(SCENARIO_NAME, scenario.outcomes)
        if failure is not None:
            print_failure(failure)
        else:
            click.echo(f"\n✓ All {len(scenario.outcomes)} steps passed")

    if failure is not None:
        sys.exit(1)


@cli.group()
def config() -> None:
    """Inspect and change harness configuration."""


@config.command("show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Show effective settings and where each value came from."""
    settings = ctx.obj["settings"]
    if ctx.obj["json_output"]:
        data = {
            "values": settings.as_dict(),
            "sources": {key: settings.get_source(key) for key in settings.as_dict()},
        }
        click.echo(json.dumps(data, indent=2))
    else:
        print_settings(settings)


@config.command("set")
@click.argument("key", type=click.Choice(list(ENV_VARS)))
@click.argument("value")
def config_set(key: str, value: str) -> None:
    """Persist KEY=VALUE to the config file."""
    try:
        save_config(key, value)
    except ConfigFileError as e:
        raise click.UsageError(str(e)) from e
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="VALUE") from e
    click.echo(f"✓ Set {key} = {value}")


def main() -> None:
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
