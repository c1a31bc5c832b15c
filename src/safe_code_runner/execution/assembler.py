from __future__ import annotations

from .types import ExecutionResult, TerminalStatus


def _decode(data: bytes) -> str:
    """Decode captured output as UTF-8, replacing undecodable bytes.

    Example:
        ```python
        text = _decode(b"hello\\n")
        ```
    """
    return data.decode("utf-8", errors="replace")


def assemble_result(status: TerminalStatus, *, image_used: str | None = None) -> ExecutionResult:
    """Normalize a supervisor status into the immutable execution result.

    Example:
        ```python
        result = assemble_result(status, image_used="python:3.11")
        ```
    """
    return ExecutionResult(
        stdout=_decode(status.stdout),
        stderr=_decode(status.stderr),
        exit_code=None if status.timed_out else status.returncode,
        timed_out=status.timed_out,
        image_used=image_used,
    )
