"""ProcessSession - handle to one running or finished external process.

Handles:
- Launching the child process (launch errors become a LAUNCH_FAILED session)
- Streaming stdout/stderr into append-only buffers while the process runs
- Racing process exit against the configured timeout in a watcher thread
- Forced termination on timeout

On POSIX every child is started in its own process group and a timeout kills
the whole group with SIGKILL, so descendants that stay in the group die with
it. Elsewhere only the direct child is killed.
"""

from __future__ import annotations

import os
import signal
import subprocess
import threading
import time
from collections.abc import Callable
from enum import Enum
from typing import IO, Any

from ..shared.logging import get_logger
from .command import CommandSpec

logger = get_logger(__name__)

_IS_POSIX = os.name == "posix"

READ_CHUNK_SIZE = 64 * 1024
# Max time to wait for output readers after the process exits. A descendant
# that left the process group can hold the pipes open indefinitely.
DEFAULT_DRAIN_TIMEOUT = 5.0


class SessionState(Enum):
    """Lifecycle state of a ProcessSession."""

    RUNNING = "running"
    COMPLETED = "completed"
    TIMED_OUT = "timed_out"
    LAUNCH_FAILED = "launch_failed"

    @property
    def is_terminal(self) -> bool:
        return self is not SessionState.RUNNING


class OutputBuffer:
    """Append-only, thread-safe byte buffer for one output stream.

    Once sealed the contents are final and later writes are dropped.
    """

    def __init__(self) -> None:
        self._data = bytearray()
        self._lock = threading.Lock()
        self._sealed = False

    def write(self, chunk: bytes) -> None:
        with self._lock:
            if not self._sealed:
                self._data.extend(chunk)

    def seal(self) -> None:
        with self._lock:
            self._sealed = True

    def contents(self) -> bytes:
        with self._lock:
            return bytes(self._data)

    def text(self) -> str:
        return self.contents().decode("utf-8", errors="replace")

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


class ProcessSession:
    """One invocation of a CommandSpec.

    Sessions are created by ``Command.run()`` (or ``ProcessSession.start``)
    and are already launched when returned.
    """

    def __init__(self, spec: CommandSpec, drain_timeout: float = DEFAULT_DRAIN_TIMEOUT):
        self.spec = spec
        self.stdout = OutputBuffer()
        self.stderr = OutputBuffer()
        self.launch_error: OSError | None = None
        self.started_at: float | None = None
        self.finished_at: float | None = None
        self._drain_timeout = drain_timeout
        self._state = SessionState.RUNNING
        self._exit_code: int | None = None
        self._process: subprocess.Popen[bytes] | None = None
        self._readers: list[threading.Thread] = []
        self._lock = threading.Lock()
        self._done = threading.Event()

    @classmethod
    def start(cls, spec: CommandSpec, **kwargs: float) -> ProcessSession:
        session = cls(spec, **kwargs)
        session._launch()
        return session

    # -- launch -------------------------------------------------------------

    def _launch(self) -> None:
        env = {**os.environ, **self.spec.env}
        self.started_at = time.monotonic()
        try:
            process = subprocess.Popen(
                self.spec.argv,
                stdin=subprocess.PIPE if self.spec.stdin is not None else subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                env=env,
                cwd=self.spec.cwd,
                start_new_session=_IS_POSIX,
            )
        except OSError as e:
            self.launch_error = e
            logger.warning("process_launch_failed", command=str(self.spec), error=str(e))
            self._transition(SessionState.LAUNCH_FAILED, None)
            return

        self._process = process
        logger.info(
            "process_launched",
            command=str(self.spec),
            pid=process.pid,
            timeout=self.spec.timeout,
        )

        assert process.stdout is not None and process.stderr is not None
        self._readers = [
            self._spawn(self._pump, process.stdout, self.stdout, name="stdout"),
            self._spawn(self._pump, process.stderr, self.stderr, name="stderr"),
        ]
        if self.spec.stdin is not None:
            assert process.stdin is not None
            self._spawn(self._feed, process.stdin, self.spec.stdin, name="stdin")
        self._spawn(self._watch, process, name="watcher")

    def _spawn(self, target: Callable[..., None], *args: Any, name: str) -> threading.Thread:
        thread = threading.Thread(
            target=target,
            args=args,
            name=f"session-{name}-{self.pid}",
            daemon=True,
        )
        thread.start()
        return thread

    @staticmethod
    def _pump(stream: IO[bytes], buffer: OutputBuffer) -> None:
        try:
            for chunk in iter(lambda: stream.read1(READ_CHUNK_SIZE), b""):  # type: ignore[attr-defined]
                buffer.write(chunk)
        finally:
            stream.close()

    def _feed(self, stream: IO[bytes], data: bytes) -> None:
        try:
            stream.write(data)
        except BrokenPipeError:
            logger.debug("stdin_closed_early", command=str(self.spec))
        finally:
            try:
                stream.close()
            except BrokenPipeError:
                pass

    # -- completion vs timeout ----------------------------------------------

    def _watch(self, process: subprocess.Popen[bytes]) -> None:
        try:
            code = process.wait(timeout=self.spec.timeout)
        except subprocess.TimeoutExpired:
            self._kill(process)
            process.wait()
            self._drain()
            self._transition(SessionState.TIMED_OUT, None)
            logger.warning(
                "process_timed_out",
                command=str(self.spec),
                pid=process.pid,
                timeout=self.spec.timeout,
            )
            return

        self._drain()
        self._transition(SessionState.COMPLETED, code)
        logger.info(
            "process_exited",
            command=str(self.spec),
            pid=process.pid,
            exit_code=code,
            duration=self.duration,
        )

    def _kill(self, process: subprocess.Popen[bytes]) -> None:
        try:
            if _IS_POSIX:
                os.killpg(process.pid, signal.SIGKILL)
            else:
                process.kill()
        except ProcessLookupError:
            # Exited between the timer firing and the kill
            pass

    def _drain(self) -> None:
        deadline = time.monotonic() + self._drain_timeout
        for reader in self._readers:
            reader.join(max(0.0, deadline - time.monotonic()))
            if reader.is_alive():
                logger.warning(
                    "output_drain_incomplete",
                    command=str(self.spec),
                    stream=reader.name,
                )

    def _transition(self, state: SessionState, exit_code: int | None) -> bool:
        """Record the single terminal transition. Returns False if already terminal."""
        with self._lock:
            if self._state.is_terminal:
                return False
            self._state = state
            self._exit_code = exit_code
            self.finished_at = time.monotonic()
        self.stdout.seal()
        self.stderr.seal()
        self._done.set()
        return True

    # -- public API -----------------------------------------------------------

    @property
    def state(self) -> SessionState:
        with self._lock:
            return self._state

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process else None

    @property
    def duration(self) -> float | None:
        if self.started_at is None or self.finished_at is None:
            return None
        return self.finished_at - self.started_at

    def wait(self, timeout: float | None = None) -> SessionState:
        """Block until the session is terminal (or ``timeout`` elapses)."""
        self._done.wait(timeout)
        return self.state

    def exit_code(self) -> int | None:
        """Block until terminal; return the exit code, or None unless COMPLETED."""
        self.wait()
        with self._lock:
            if self._state is SessionState.COMPLETED:
                return self._exit_code
            return None

    def buffer(self) -> bytes:
        """Stdout captured so far (complete once the session is terminal)."""
        return self.stdout.contents()

    def err(self) -> bytes:
        """Stderr captured so far (complete once the session is terminal)."""
        return self.stderr.contents()

    @property
    def succeeded(self) -> bool:
        return self.exit_code() == 0

    def status_marker(self) -> str:
        """Short human-readable terminal status."""
        state = self.state
        if state is SessionState.COMPLETED:
            return f"exit code {self._exit_code}"
        if state is SessionState.TIMED_OUT:
            return f"TIMED OUT after {self.spec.timeout:g}s"
        if state is SessionState.LAUNCH_FAILED:
            return f"LAUNCH FAILED: {self.launch_error}"
        return "RUNNING"

    def describe(self) -> str:
        """Diagnostic text: command, status, full stdout and stderr."""
        return (
            f"Command: {self.spec}\n"
            f"Status: {self.status_marker()}\n"
            f"--- stdout ---\n{self.stdout.text()}\n"
            f"--- stderr ---\n{self.stderr.text()}"
        )

    def __repr__(self) -> str:
        return f"<ProcessSession {str(self.spec)!r} {self.status_marker()}>"
