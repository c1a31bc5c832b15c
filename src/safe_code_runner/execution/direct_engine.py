from __future__ import annotations

from dataclasses import dataclass

from ..errors import InvalidInputError
from ..settings import RunnerSettings
from .sandbox import LaunchPlan, run_sandboxed
from .supervisor import ProcessSupervisor
from .types import ExecutionResult, SingleFileRequest
from .workspace import Workspace, WorkspaceManager

DIRECT_WORKSPACE_PREFIX = "scr-run-"


@dataclass(frozen=True, slots=True)
class InterpreterChoice:
    """Interpreter binary and source file name for one language.

    Example:
        ```python
        choice = InterpreterChoice(language="python", interpreter="python3", file_name="main.py")
        ```
    """

    language: str
    interpreter: str
    file_name: str


def select_interpreter(language: str | None, settings: RunnerSettings) -> InterpreterChoice:
    """Map a language to its interpreter; unrecognized values select JavaScript.

    Example:
        ```python
        choice = select_interpreter("ruby", RunnerSettings())
        assert choice.language == "javascript"
        ```
    """
    if language == "python":
        return InterpreterChoice("python", settings.python_interpreter, "main.py")
    return InterpreterChoice("javascript", settings.node_interpreter, "main.js")


class DirectEngine:
    """Run a single source file with a host interpreter in a scratch directory.

    Host-process isolation only: the child sees the network and filesystem
    of the service user. Bounded by a wall-clock deadline.

    Example:
        ```python
        engine = DirectEngine(RunnerSettings(direct_timeout_seconds=8))
        ```
    """

    def __init__(
        self,
        settings: RunnerSettings | None = None,
        *,
        supervisor: ProcessSupervisor | None = None,
    ) -> None:
        """Initialize the engine with deployment settings.

        Example:
            ```python
            engine = DirectEngine()
            ```
        """
        self._settings = settings or RunnerSettings()
        self._supervisor = supervisor or ProcessSupervisor()
        self._workspaces = WorkspaceManager(
            scratch_root=self._settings.scratch_path,
            prefix=DIRECT_WORKSPACE_PREFIX,
        )

    @property
    def workspace_manager(self) -> WorkspaceManager:
        """Return the manager that owns Direct-mode workspaces.

        Example:
            ```python
            manager = engine.workspace_manager
            ```
        """
        return self._workspaces

    def execute(self, request: SingleFileRequest) -> ExecutionResult:
        """Execute one single-file request and return its result.

        Example:
            ```python
            result = engine.execute(SingleFileRequest(code="print('hello')", language="python"))
            ```
        """
        return run_sandboxed(self, request, supervisor=self._supervisor)

    def validate(self, request: SingleFileRequest) -> None:
        """Reject requests without source code.

        Example:
            ```python
            engine.validate(SingleFileRequest(code="1"))
            ```
        """
        if not isinstance(request.code, str) or not request.code:
            raise InvalidInputError("Code required")
        if request.language is not None and not isinstance(request.language, str):
            raise InvalidInputError("'language' must be a string")

    def materialize(self, workspace: Workspace, request: SingleFileRequest) -> None:
        """Write the source file named after the selected language.

        Example:
            ```python
            engine.materialize(ws, SingleFileRequest(code="print(1)", language="python"))
            ```
        """
        choice = select_interpreter(request.language, self._settings)
        self._workspaces.write(workspace, choice.file_name, request.code)

    def plan(self, workspace: Workspace, request: SingleFileRequest) -> LaunchPlan:
        """Build `interpreter main.<ext>` with the Direct-mode deadline.

        Example:
            ```python
            plan = engine.plan(ws, request)
            ```
        """
        choice = select_interpreter(request.language, self._settings)
        return LaunchPlan(
            argv=[choice.interpreter, str(workspace.root / choice.file_name)],
            timeout_seconds=self._settings.direct_timeout_seconds,
        )
