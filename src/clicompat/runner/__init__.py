"""Process harness: build commands, launch them, inspect their sessions."""

from .command import Command, CommandSpec, new_cmd
from .session import OutputBuffer, ProcessSession, SessionState

__all__ = [
    "Command",
    "CommandSpec",
    "new_cmd",
    "OutputBuffer",
    "ProcessSession",
    "SessionState",
]
