"""Compatibility scenarios built on the process harness."""

from .backwards import (
    SCENARIO_NAME,
    CompatConfig,
    CurrentTool,
    backwards_compatibility_steps,
    download_release,
    generate_cluster_name,
    get_version,
    run_backwards_compatibility,
)

__all__ = [
    "SCENARIO_NAME",
    "CompatConfig",
    "CurrentTool",
    "backwards_compatibility_steps",
    "download_release",
    "generate_cluster_name",
    "get_version",
    "run_backwards_compatibility",
]
