from __future__ import annotations

import contextlib
import os
import signal
import subprocess
import threading
import time
from pathlib import Path
from typing import IO, Callable, Mapping, Sequence

from loguru import logger

from ..errors import SpawnError
from .types import TerminalStatus

_READ_CHUNK_BYTES = 65536
DEFAULT_DRAIN_GRACE_SECONDS = 2.0


class _StreamDrain:
    """Append every chunk of one child stream to a private accumulator.

    Example:
        ```python
        drain = _StreamDrain(proc.stdout, "stdout")
        drain.start()
        ```
    """

    def __init__(self, stream: IO[bytes], name: str) -> None:
        """Bind the drain to an open pipe; reading starts on `start()`.

        Example:
            ```python
            drain = _StreamDrain(proc.stderr, "stderr")
            ```
        """
        self._stream = stream
        self._chunks: list[bytes] = []
        self._lock = threading.Lock()
        self._thread = threading.Thread(target=self._pump, name=f"scr-drain-{name}", daemon=True)

    def start(self) -> None:
        """Start the reader thread.

        Example:
            ```python
            drain.start()
            ```
        """
        self._thread.start()

    def join(self, timeout: float | None) -> bool:
        """Wait for EOF; return False when the stream is still held open.

        Example:
            ```python
            drained = drain.join(timeout=2.0)
            ```
        """
        self._thread.join(timeout)
        if self._thread.is_alive():
            return False
        self._stream.close()
        return True

    def value(self) -> bytes:
        """Return everything read so far.

        Example:
            ```python
            data = drain.value()
            ```
        """
        with self._lock:
            return b"".join(self._chunks)

    def _pump(self) -> None:
        """Read until EOF, appending chunks as soon as they are available.

        Example:
            ```python
            drain._pump()
            ```
        """
        while True:
            chunk = self._stream.read1(_READ_CHUNK_BYTES)  # type: ignore[attr-defined]
            if not chunk:
                return
            with self._lock:
                self._chunks.append(chunk)


def _kill_process_group(proc: subprocess.Popen[bytes]) -> None:
    """Send one SIGKILL to the child's process group.

    Also used after a normal exit: the group outlives its reaped leader
    while any member is alive.

    Example:
        ```python
        _kill_process_group(proc)
        ```
    """
    with contextlib.suppress(ProcessLookupError, PermissionError):
        if os.name == "posix":
            os.killpg(proc.pid, signal.SIGKILL)
        else:
            proc.kill()


class ProcessSupervisor:
    """Spawn one child, drain its output, and enforce a wall-clock deadline.

    Example:
        ```python
        status = ProcessSupervisor().run(["python3", "main.py"], cwd=ws.root, timeout_seconds=8)
        ```
    """

    def __init__(self, *, drain_grace_seconds: float = DEFAULT_DRAIN_GRACE_SECONDS) -> None:
        """Initialize the supervisor.

        `drain_grace_seconds` bounds the wait for pipes held open by
        descendants that left the child's process group.

        Example:
            ```python
            supervisor = ProcessSupervisor(drain_grace_seconds=1.0)
            ```
        """
        self._drain_grace_seconds = drain_grace_seconds

    def run(
        self,
        argv: Sequence[str],
        *,
        cwd: Path,
        timeout_seconds: float,
        on_timeout: Callable[[], None] | None = None,
        env: Mapping[str, str] | None = None,
    ) -> TerminalStatus:
        """Run `argv` in `cwd` and return its terminal status.

        A child still running at the deadline is killed and reported with
        `returncode=None` and `timed_out=True`; output captured before the
        kill is kept. After a normal exit the rest of the child's process
        group is killed as well.

        Example:
            ```python
            status = supervisor.run(["node", "main.js"], cwd=Path("/tmp/ws"), timeout_seconds=8)
            ```
        """
        logger.debug(f"Spawning {list(argv)} in {cwd} (timeout {timeout_seconds}s)")
        started = time.monotonic()
        try:
            proc = subprocess.Popen(
                list(argv),
                cwd=str(cwd),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                env=dict(env) if env is not None else None,
                start_new_session=True,
            )
        except FileNotFoundError as exc:
            raise SpawnError(f"Executable not found: {argv[0]}") from exc
        except OSError as exc:
            raise SpawnError(f"Failed to launch {argv[0]}: {exc}") from exc

        assert proc.stdout is not None and proc.stderr is not None
        stdout = _StreamDrain(proc.stdout, "stdout")
        stderr = _StreamDrain(proc.stderr, "stderr")
        stdout.start()
        stderr.start()

        timed_out = False
        try:
            returncode: int | None = proc.wait(timeout=timeout_seconds)
        except subprocess.TimeoutExpired:
            timed_out = True
            returncode = None
            logger.warning(f"Process {proc.pid} exceeded {timeout_seconds}s deadline; killing")
            _kill_process_group(proc)
            if on_timeout is not None:
                on_timeout()
            proc.wait()
        except BaseException:
            _kill_process_group(proc)
            proc.wait()
            raise
        else:
            # Background children must not outlive the attempt.
            _kill_process_group(proc)

        stdout_drained = stdout.join(self._drain_grace_seconds)
        stderr_drained = stderr.join(self._drain_grace_seconds)
        if not (stdout_drained and stderr_drained):
            logger.warning(
                f"Output pipes of process {proc.pid} still held open by a detached descendant; "
                "returning output captured so far"
            )
        return TerminalStatus(
            stdout=stdout.value(),
            stderr=stderr.value(),
            returncode=returncode,
            timed_out=timed_out,
            duration_seconds=time.monotonic() - started,
        )
