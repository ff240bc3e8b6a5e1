"""Backwards-compatibility scenario.

Creates a cluster with a previous release of the tool, then uses the current
binary to inspect, extend, scale and tear it down. Every step must succeed.
"""

from __future__ import annotations

import os
import secrets
from dataclasses import dataclass
from pathlib import Path

from ..config import DEFAULT_DOWNLOAD_SCRIPT, DEFAULT_GO_BACK_VERSIONS, DEFAULT_REGION
from ..errors import failure_from_session
from ..matchers import contain_substring, run_successfully_with_output_string
from ..runner.command import Command
from ..scenario import Scenario, StepOutcome

SCENARIO_NAME = "backwards-compatibility"


def generate_cluster_name(prefix: str = "compat") -> str:
    return f"{prefix}-{secrets.token_hex(4)}"


@dataclass
class CompatConfig:
    """Inputs of the backwards-compatibility scenario. Timeouts are seconds."""

    binary: str
    download_script: str = DEFAULT_DOWNLOAD_SCRIPT
    go_back_versions: int = DEFAULT_GO_BACK_VERSIONS
    region: str = DEFAULT_REGION
    cluster_name: str = ""
    initial_nodegroup: str = "ng-1"
    new_nodegroup: str = "ng-2"
    # File name of the downloaded binary; defaults to the current binary's name
    release_binary: str = ""

    download_timeout: float = 30
    cluster_create_timeout: float = 20 * 60
    create_timeout: float = 25 * 60
    get_timeout: float = 60
    scale_timeout: float = 5 * 60
    delete_timeout: float = 15 * 60

    def __post_init__(self) -> None:
        if not self.cluster_name:
            self.cluster_name = generate_cluster_name()
        if not self.release_binary:
            self.release_binary = os.path.basename(self.binary)
        if self.go_back_versions < 1:
            raise ValueError(f"go_back_versions must be >= 1, got {self.go_back_versions}")
        for name in ("download_script", "region"):
            if not getattr(self, name):
                raise ValueError(f"{name} must not be empty")


class CurrentTool:
    """Base commands of the current binary, with their timeouts."""

    def __init__(self, config: CompatConfig):
        base = Command(config.binary)
        self.get = base.with_args("get").with_timeout(config.get_timeout)
        self.create = base.with_args("create").with_timeout(config.create_timeout)
        self.scale_nodegroup = base.with_args("scale", "nodegroup").with_timeout(
            config.scale_timeout
        )
        self.delete = base.with_args("delete").with_timeout(config.delete_timeout)
        self.delete_cluster = self.delete.with_args("cluster", "--verbose", "4")


def download_release(scenario: Scenario, config: CompatConfig, directory: Path) -> Path:
    """Download the release ``go_back_versions`` back into ``directory``.

    Returns:
        Path of the downloaded binary.
    """
    cmd = (
        Command(config.download_script)
        .with_env(
            f"GO_BACK_VERSIONS={config.go_back_versions}",
            f"DOWNLOAD_DIR={directory}",
        )
        .with_timeout(config.download_timeout)
    )
    scenario.step("downloading a previous release", cmd)
    return directory / config.release_binary


def get_version(binary: str | os.PathLike[str], scenario: Scenario | None = None) -> str:
    """Return the stripped output of ``<binary> version``.

    Raises:
        StepFailure: The version command did not exit 0.
    """
    cmd = Command(binary).with_args("version")
    if scenario is not None:
        session = scenario.step("querying the release version", cmd)
    else:
        session = cmd.run()
        if session.exit_code() != 0:
            raise failure_from_session(session, step="querying the release version")
    return session.stdout.text().strip()


def backwards_compatibility_steps(scenario: Scenario, config: CompatConfig) -> str:
    """Run every step of the scenario inside ``scenario``.

    Returns:
        The version string of the previous release.
    """
    directory = scenario.temp_dir(config.release_binary)
    previous = download_release(scenario, config, directory)
    version = get_version(previous, scenario)

    tool = CurrentTool(config)
    region = ("--region", config.region)
    name = config.cluster_name

    scenario.step(
        f"creating a cluster with release {version!r}",
        Command(previous)
        .with_args(
            "create",
            "cluster",
            "--name",
            name,
            "--nodegroup-name",
            config.initial_nodegroup,
            "-v4",
            *region,
        )
        .with_timeout(config.cluster_create_timeout),
    )

    scenario.step(
        "fetching the new cluster",
        tool.get.with_args("cluster", name, "--output", "json", *region),
        run_successfully_with_output_string(contain_substring(name)),
    )

    scenario.step(
        "adding a nodegroup",
        tool.create.with_args(
            "nodegroup", "--cluster", name, "--nodes", "2", *region, config.new_nodegroup
        ),
    )

    scenario.step(
        "scaling the initial nodegroup",
        tool.scale_nodegroup.with_args(
            "--cluster", name, "--nodes", "3", "--name", config.initial_nodegroup, *region
        ),
    )

    for label, nodegroup in (
        ("deleting the new nodegroup", config.new_nodegroup),
        ("deleting the initial nodegroup", config.initial_nodegroup),
    ):
        scenario.step(
            label,
            tool.delete.with_args(
                "nodegroup", "--verbose", "4", "--cluster", name, *region, nodegroup
            ),
        )

    scenario.step(
        "deleting the cluster",
        tool.delete_cluster.with_args("--name", name, *region),
    )
    return version


def run_backwards_compatibility(config: CompatConfig) -> list[StepOutcome]:
    """Run the full scenario with its own scope; scratch space is always removed."""
    with Scenario(SCENARIO_NAME) as scenario:
        backwards_compatibility_steps(scenario, config)
        return list(scenario.outcomes)
