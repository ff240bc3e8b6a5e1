"""Shared fixtures for live scenario tests.

Layers:
  Live (cloud account): backwards compatibility against a real ``eksctl``
"""

from __future__ import annotations

import os

import pytest

from clicompat.compat.backwards import CompatConfig
from clicompat.config import DEFAULT_REGION

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

BINARY = os.environ.get("CLICOMPAT_BINARY")
DOWNLOAD_SCRIPT = os.environ.get("CLICOMPAT_DOWNLOAD_SCRIPT")
REGION = os.environ.get("CLICOMPAT_REGION", DEFAULT_REGION)


# ---------------------------------------------------------------------------
# Live Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def live_config() -> CompatConfig:
    """Scenario inputs from the environment. Skips when the tool is not configured."""
    if not BINARY or not DOWNLOAD_SCRIPT:
        pytest.skip("Set CLICOMPAT_BINARY and CLICOMPAT_DOWNLOAD_SCRIPT to run live scenarios")
    return CompatConfig(binary=BINARY, download_script=DOWNLOAD_SCRIPT, region=REGION)
