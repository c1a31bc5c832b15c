from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Protocol, TypeVar

from loguru import logger

from .assembler import assemble_result
from .supervisor import ProcessSupervisor
from .types import ExecutionResult
from .workspace import Workspace, WorkspaceManager

RequestT = TypeVar("RequestT", contravariant=True)
_R = TypeVar("_R")


@dataclass(frozen=True, slots=True)
class LaunchPlan:
    """Everything the supervisor needs to start one attempt.

    Example:
        ```python
        plan = LaunchPlan(argv=["python3", "main.py"], timeout_seconds=8)
        ```
    """

    argv: list[str]
    timeout_seconds: float
    on_timeout: Callable[[], None] | None = None
    image_used: str | None = None
    env: dict[str, str] | None = None


class LaunchStrategy(Protocol[RequestT]):
    """How one engine validates, materializes, and launches a request.

    Example:
        ```python
        result = run_sandboxed(DirectEngine(), SingleFileRequest("print(1)", "python"))
        ```
    """

    @property
    def workspace_manager(self) -> WorkspaceManager:
        """Return the manager that owns this strategy's workspaces.

        Example:
            ```python
            manager = strategy.workspace_manager
            ```
        """
        ...

    def validate(self, request: RequestT) -> None:
        """Reject malformed requests before any workspace exists.

        Example:
            ```python
            strategy.validate(request)
            ```
        """
        ...

    def materialize(self, workspace: Workspace, request: RequestT) -> None:
        """Write the request's source files into the workspace.

        Example:
            ```python
            strategy.materialize(ws, request)
            ```
        """
        ...

    def plan(self, workspace: Workspace, request: RequestT) -> LaunchPlan:
        """Build the command line, deadline, and timeout hook for the attempt.

        Example:
            ```python
            plan = strategy.plan(ws, request)
            ```
        """
        ...


def run_sandboxed(
    strategy: LaunchStrategy[_R],
    request: _R,
    *,
    supervisor: ProcessSupervisor | None = None,
) -> ExecutionResult:
    """Run one attempt: validate, workspace, spawn with deadline, assemble, clean up.

    The workspace is removed on every exit path, including validation,
    write, and spawn failures raised after it was created.

    Example:
        ```python
        result = run_sandboxed(engine, ProjectRequest(files=[ProjectFile("main.js", "1")]))
        ```
    """
    strategy.validate(request)
    runner = supervisor or ProcessSupervisor()
    with strategy.workspace_manager.session() as workspace:
        strategy.materialize(workspace, request)
        plan = strategy.plan(workspace, request)
        status = runner.run(
            plan.argv,
            cwd=workspace.root,
            timeout_seconds=plan.timeout_seconds,
            on_timeout=plan.on_timeout,
            env=plan.env,
        )
    result = assemble_result(status, image_used=plan.image_used)
    logger.info(
        f"Attempt finished in {status.duration_seconds:.2f}s "
        f"(exit={result.exit_code}, timed_out={result.timed_out}, image={result.image_used})"
    )
    return result
