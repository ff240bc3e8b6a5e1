"""Shared test fixtures for clicompat tests.

This module provides:
- py: builds a Command running a Python snippet in a fresh interpreter
- fake_toolchain: an executable stand-in for the tool under test plus a
  release download script, both logging every invocation to a JSON-lines file
"""

import json
import os
import stat
import sys
import textwrap
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pytest

from clicompat.runner.command import Command
from clicompat.shared.logging import configure_logging

# =============================================================================
# Logging
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _quiet_logging() -> None:
    """Route structlog through stdlib logging at WARNING, away from stdout."""
    configure_logging("warning")


# =============================================================================
# Python snippet commands
# =============================================================================


def python_cmd(code: str) -> Command:
    """Command that runs ``code`` with the current interpreter."""
    return Command(sys.executable).with_args("-c", textwrap.dedent(code))


@pytest.fixture
def py() -> Callable[[str], Command]:
    return python_cmd


# =============================================================================
# Fake tool + download script
# =============================================================================

FAKE_TOOL_SOURCE = """\
import json
import os
import sys

args = sys.argv[1:]
log = os.environ.get("FAKE_TOOL_LOG")
if log:
    with open(log, "a") as f:
        f.write(json.dumps({"binary": sys.argv[0], "args": args}) + "\\n")

fail_on = os.environ.get("FAKE_TOOL_FAIL_ON")
if fail_on and " ".join(args).startswith(fail_on):
    sys.stderr.write("Error: simulated failure for " + fail_on + "\\n")
    sys.exit(1)

if args[:1] == ["version"]:
    print(os.environ.get("FAKE_TOOL_VERSION", "0.42.1"))
    sys.exit(0)

if args[:2] == ["get", "cluster"]:
    output = os.environ.get("FAKE_TOOL_GET_OUTPUT")
    print(output or json.dumps([{"Name": args[2], "Status": "ACTIVE"}]))

sys.exit(0)
"""

DOWNLOAD_SCRIPT_SOURCE = """\
import json
import os
import shutil
import sys
import time

log = os.environ.get("FAKE_TOOL_LOG")
if log:
    with open(log, "a") as f:
        f.write(json.dumps({
            "binary": sys.argv[0],
            "args": sys.argv[1:],
            "go_back_versions": os.environ.get("GO_BACK_VERSIONS"),
            "download_dir": os.environ.get("DOWNLOAD_DIR"),
        }) + "\\n")

if os.environ.get("FAKE_DOWNLOAD_SLEEP"):
    time.sleep(float(os.environ["FAKE_DOWNLOAD_SLEEP"]))

if os.environ.get("FAKE_DOWNLOAD_FAIL"):
    sys.stderr.write("no such release\\n")
    sys.exit(3)

shutil.copy2(SOURCE, os.path.join(os.environ["DOWNLOAD_DIR"], "eksctl"))
"""


def write_executable(path: Path, source: str) -> Path:
    path.write_text(f"#!{sys.executable}\n{source}")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@dataclass
class FakeToolchain:
    """Paths of the fake tool, its download script and the invocation log."""

    binary: Path
    download_script: Path
    log: Path

    def invocations(self) -> list[dict[str, Any]]:
        if not self.log.exists():
            return []
        return [json.loads(line) for line in self.log.read_text().splitlines() if line]

    def tool_invocations(self) -> list[dict[str, Any]]:
        return [i for i in self.invocations() if Path(i["binary"]).name == "eksctl"]


@pytest.fixture
def fake_toolchain(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> FakeToolchain:
    """A fake ``eksctl`` and a download script that "releases" a copy of it."""
    if os.name != "posix":
        pytest.skip("fake toolchain relies on shebang scripts")

    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    binary = write_executable(bin_dir / "eksctl", FAKE_TOOL_SOURCE)
    download_script = write_executable(
        bin_dir / "download-previous-release",
        f"SOURCE = {str(binary)!r}\n{DOWNLOAD_SCRIPT_SOURCE}",
    )
    log = tmp_path / "invocations.jsonl"

    monkeypatch.setenv("FAKE_TOOL_LOG", str(log))
    for var in (
        "FAKE_TOOL_FAIL_ON",
        "FAKE_TOOL_GET_OUTPUT",
        "FAKE_TOOL_VERSION",
        "FAKE_DOWNLOAD_FAIL",
        "FAKE_DOWNLOAD_SLEEP",
    ):
        monkeypatch.delenv(var, raising=False)

    return FakeToolchain(binary=binary, download_script=download_script, log=log)


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the config file at an empty temp location and clear CLICOMPAT_* vars."""
    from clicompat.config import ENV_VARS

    for env_var in ENV_VARS.values():
        monkeypatch.delenv(env_var, raising=False)
    config_file = tmp_path / ".clicompat" / "config.yaml"
    monkeypatch.setattr("clicompat.config.get_config_path", lambda: config_file)
    return config_file
