from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Mapping, Union

from ..errors import InvalidInputError

Mode = Literal["direct", "project"]


@dataclass(slots=True)
class SingleFileRequest:
    """Direct-mode request: one source file run by a host interpreter.

    Example:
        ```python
        req = SingleFileRequest(code="print('hi')", language="python")
        ```
    """

    code: str
    language: str = "javascript"


@dataclass(slots=True)
class ProjectFile:
    """One file of a multi-file project.

    Example:
        ```python
        f = ProjectFile(path="src/util.py", content="X = 1\\n")
        ```
    """

    path: str
    content: str | None = None


@dataclass(slots=True)
class ProjectRequest:
    """Project-mode request: a file tree run inside a disposable container.

    Example:
        ```python
        req = ProjectRequest(files=[ProjectFile("main.py", "print(1)")], language="python")
        ```
    """

    files: list[ProjectFile] = field(default_factory=list)
    language: str = "node"
    command: str | None = None


ExecutionRequest = Union[SingleFileRequest, ProjectRequest]


@dataclass(frozen=True, slots=True)
class TerminalStatus:
    """Raw outcome reported by the process supervisor.

    Example:
        ```python
        status = TerminalStatus(b"hello\\n", b"", 0, False, 0.05)
        ```
    """

    stdout: bytes
    stderr: bytes
    returncode: int | None
    timed_out: bool
    duration_seconds: float


@dataclass(frozen=True, slots=True)
class ExecutionResult:
    """Immutable result of one execution attempt.

    `timed_out` is authoritative; a killed attempt always reports
    `exit_code=None`.

    Example:
        ```python
        result = ExecutionResult(stdout="hello\\n", stderr="", exit_code=0, timed_out=False)
        ```
    """

    stdout: str
    stderr: str
    exit_code: int | None
    timed_out: bool
    image_used: str | None = None

    @property
    def ok(self) -> bool:
        """Return True when the program exited 0 before its deadline.

        Example:
            ```python
            assert ExecutionResult("", "", 0, False).ok
            ```
        """
        return not self.timed_out and self.exit_code == 0

    def to_dict(self, mode: Mode = "direct") -> dict[str, Any]:
        """Render the camelCase wire shape for Direct or Project mode.

        Example:
            ```python
            body = result.to_dict("project")
            ```
        """
        body: dict[str, Any] = {
            "stdout": self.stdout,
            "stderr": self.stderr,
            "exitCode": self.exit_code,
            "timedOut": self.timed_out,
        }
        if mode == "project":
            body["imageUsed"] = self.image_used
        return body


def coerce_project_file(item: object) -> ProjectFile:
    """Accept a ProjectFile or a `{path, content}` mapping.

    Example:
        ```python
        f = coerce_project_file({"path": "main.js", "content": "console.log(1)"})
        ```
    """
    if isinstance(item, ProjectFile):
        return item
    if isinstance(item, Mapping):
        path = item.get("path")
        content = item.get("content")
        if path is not None and not isinstance(path, str):
            raise InvalidInputError("File 'path' must be a string")
        if content is not None and not isinstance(content, str):
            raise InvalidInputError("File 'content' must be a string")
        return ProjectFile(path=path or "", content=content)
    raise InvalidInputError("Each file must be an object with 'path' and 'content'")
