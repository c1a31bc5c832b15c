from __future__ import annotations

from typing import Any, Iterable, Mapping

from .errors import InvalidInputError
from .execution.direct_engine import DirectEngine
from .execution.docker_engine import DockerEngine
from .execution.engine import ExecutionEngine
from .execution.types import (
    ExecutionRequest,
    ExecutionResult,
    ProjectFile,
    ProjectRequest,
    SingleFileRequest,
    coerce_project_file,
)
from .settings import RunnerSettings


def run_code(
    code: str,
    language: str = "javascript",
    *,
    engine: ExecutionEngine[SingleFileRequest] | None = None,
    settings: RunnerSettings | None = None,
) -> ExecutionResult:
    """Run one source file with a host interpreter (Direct mode).

    Example:
        ```python
        from safe_code_runner import run_code
        result = run_code("print('hello')", language="python")
        ```
    """
    if engine is not None and settings is not None:
        raise ValueError("Provide either 'engine' or 'settings', not both")
    resolved = engine or DirectEngine(settings)
    return resolved.execute(SingleFileRequest(code=code, language=language))


def run_project(
    files: Iterable[ProjectFile | Mapping[str, Any]],
    language: str = "node",
    command: str | None = None,
    *,
    engine: ExecutionEngine[ProjectRequest] | None = None,
    settings: RunnerSettings | None = None,
) -> ExecutionResult:
    """Run a multi-file project inside a disposable container (Project mode).

    Example:
        ```python
        from safe_code_runner import run_project
        result = run_project([{"path": "main.py", "content": "print(1)"}], language="python")
        ```
    """
    if engine is not None and settings is not None:
        raise ValueError("Provide either 'engine' or 'settings', not both")
    resolved = engine or DockerEngine(settings)
    request = ProjectRequest(
        files=[coerce_project_file(item) for item in files],
        language=language,
        command=command,
    )
    return resolved.execute(request)


def parse_request(payload: Any) -> ExecutionRequest:
    """Build a Direct or Project request from a decoded JSON body.

    A body carrying `files` is a Project request; anything else is Direct.

    Example:
        ```python
        req = parse_request({"code": "console.log(1)", "language": "javascript"})
        ```
    """
    if not isinstance(payload, Mapping):
        raise InvalidInputError("Request body must be a JSON object")
    if "files" in payload:
        files = payload.get("files")
        if not isinstance(files, list) or not files:
            raise InvalidInputError("files[] required")
        command = payload.get("command")
        if command is not None and not isinstance(command, str):
            raise InvalidInputError("'command' must be a string")
        return ProjectRequest(
            files=[coerce_project_file(item) for item in files],
            language=_language(payload, "node"),
            command=command or None,
        )
    code = payload.get("code")
    if not isinstance(code, str) or not code:
        raise InvalidInputError("Code required")
    return SingleFileRequest(code=code, language=_language(payload, "javascript"))


def _language(payload: Mapping[str, Any], default: str) -> str:
    """Read the optional `language` field.

    Example:
        ```python
        lang = _language({"language": "python"}, "node")
        ```
    """
    language = payload.get("language")
    if language is None:
        return default
    if not isinstance(language, str):
        raise InvalidInputError("'language' must be a string")
    return language


def execute_payload(
    payload: Any,
    *,
    direct_engine: ExecutionEngine[SingleFileRequest] | None = None,
    project_engine: ExecutionEngine[ProjectRequest] | None = None,
) -> dict[str, Any]:
    """Execute a decoded JSON body and return the JSON-ready response body.

    Raises `InvalidInputError`, `ResourceError`, or `SpawnError`; each
    exposes `to_dict()` for the error response body.

    Example:
        ```python
        body = execute_payload({"code": "print(1)", "language": "python"})
        ```
    """
    request = parse_request(payload)
    if isinstance(request, ProjectRequest):
        return (project_engine or DockerEngine()).execute(request).to_dict("project")
    return (direct_engine or DirectEngine()).execute(request).to_dict("direct")
