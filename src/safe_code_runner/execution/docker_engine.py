from __future__ import annotations

import os
import shutil
import subprocess
from pathlib import Path
from typing import Mapping, Protocol

from loguru import logger

from ..errors import InvalidInputError, SpawnError
from ..settings import RunnerSettings
from .config import (
    CONTAINER_CPUS,
    CONTAINER_MEMORY_LIMIT,
    CONTAINER_NETWORK,
    CONTAINER_SHELL,
    CONTAINER_WORKDIR,
    MANAGED_LABELS,
    is_daemon_unreachable,
    new_container_name,
    select_runtime,
)
from .sandbox import LaunchPlan, run_sandboxed
from .supervisor import ProcessSupervisor
from .types import ExecutionResult, ProjectRequest, coerce_project_file
from .workspace import Workspace, WorkspaceManager

PROJECT_WORKSPACE_PREFIX = "scr-project-"
_KILL_TIMEOUT_SECONDS = 10


def docker_is_available(
    *,
    docker_binary: str = "docker",
    docker_env: Mapping[str, str] | None = None,
    docker_context: str | None = None,
) -> tuple[bool, str | None]:
    """Check Docker CLI and daemon accessibility for the selected target.

    Example:
        ```python
        ok, reason = docker_is_available(docker_env=os.environ, docker_context=None)
        ```
    """
    if shutil.which(docker_binary) is None:
        return False, "Docker CLI was not found. Install Docker and ensure it is on PATH."
    cmd = [docker_binary]
    if docker_context:
        cmd.extend(["--context", docker_context])
    cmd.append("info")
    probe = subprocess.run(
        cmd,
        capture_output=True,
        text=True,
        check=False,
        env=dict(docker_env) if docker_env is not None else None,
    )
    if probe.returncode != 0:
        return False, "Docker is installed but the daemon is not running or not accessible."
    return True, None


class ContainerLauncher(Protocol):
    """Container runtime capability used by the Docker engine.

    Example:
        ```python
        launcher: ContainerLauncher = DockerLauncher()
        ```
    """

    def build_run_command(
        self,
        *,
        name: str,
        image: str,
        workspace_dir: Path,
        command: str,
    ) -> list[str]:
        """Return the argv that runs `command` in a transient container.

        Example:
            ```python
            argv = launcher.build_run_command(name="scr-1", image="node:18", workspace_dir=ws.root, command="node main.js")
            ```
        """
        ...

    def environment(self) -> dict[str, str] | None:
        """Return the environment for the runtime client, or None to inherit.

        Example:
            ```python
            env = launcher.environment()
            ```
        """
        ...

    def kill(self, name: str) -> None:
        """Force-kill the named container; must not raise.

        Example:
            ```python
            launcher.kill("scr-1a2b3c4d5e6f")
            ```
        """
        ...


class DockerLauncher:
    """Launch transient, network-less, resource-capped containers via the Docker CLI.

    Example:
        ```python
        launcher = DockerLauncher(docker_context="remote-builder")
        ```
    """

    def __init__(
        self,
        *,
        docker_binary: str = "docker",
        docker_context: str | None = None,
        docker_host: str | None = None,
    ) -> None:
        """Initialize Docker CLI targeting.

        Example:
            ```python
            launcher = DockerLauncher(docker_host="ssh://ubuntu@server")
            ```
        """
        if docker_context and docker_host:
            raise ValueError("Use either docker_context or docker_host, not both")
        self._docker_binary = docker_binary
        self._docker_context = docker_context or None
        self._docker_host = docker_host or None

    def build_run_command(
        self,
        *,
        name: str,
        image: str,
        workspace_dir: Path,
        command: str,
    ) -> list[str]:
        """Build `docker run` with the fixed isolation policy.

        Example:
            ```python
            argv = launcher.build_run_command(name="scr-1", image="python:3.11", workspace_dir=Path("/tmp/ws"), command="python main.py")
            ```
        """
        cmd = self._docker_cmd(
            [
                "run",
                "--rm",
                "--name",
                name,
                "--network",
                CONTAINER_NETWORK,
                "--memory",
                CONTAINER_MEMORY_LIMIT,
                "--cpus",
                CONTAINER_CPUS,
                "-v",
                f"{workspace_dir}:{CONTAINER_WORKDIR}",
                "-w",
                CONTAINER_WORKDIR,
            ]
        )
        for key, value in MANAGED_LABELS.items():
            cmd.extend(["--label", f"{key}={value}"])
        cmd.extend([image, *CONTAINER_SHELL, command])
        return cmd

    def environment(self) -> dict[str, str] | None:
        """Build environment variables for Docker CLI targeting.

        Example:
            ```python
            env = launcher.environment()
            ```
        """
        if not self._docker_host:
            return None
        env = dict(os.environ)
        env["DOCKER_HOST"] = self._docker_host
        return env

    def kill(self, name: str) -> None:
        """Force-kill a container by name; failures are logged.

        Example:
            ```python
            launcher.kill("scr-1a2b3c4d5e6f")
            ```
        """
        try:
            killed = subprocess.run(
                self._docker_cmd(["kill", name]),
                capture_output=True,
                text=True,
                check=False,
                timeout=_KILL_TIMEOUT_SECONDS,
                env=self.environment(),
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            logger.warning(f"Failed to kill container {name}: {exc}")
            return
        if killed.returncode != 0:
            # Already gone when the client died before the container started.
            logger.debug(f"docker kill {name} exited {killed.returncode}: {killed.stderr.strip()}")

    def _docker_cmd(self, args: list[str]) -> list[str]:
        """Build a Docker CLI command with optional context.

        Example:
            ```python
            cmd = launcher._docker_cmd(["ps"])
            ```
        """
        cmd = [self._docker_binary]
        if self._docker_context:
            cmd.extend(["--context", self._docker_context])
        cmd.extend(args)
        return cmd


class DockerEngine:
    """Run a multi-file project inside a disposable Docker container.

    Every attempt gets its own container: removed on exit, no network,
    512 MiB memory, one CPU, workspace mounted read-write at `/app`.

    Example:
        ```python
        engine = DockerEngine(RunnerSettings(container_timeout_seconds=20))
        ```
    """

    def __init__(
        self,
        settings: RunnerSettings | None = None,
        *,
        launcher: ContainerLauncher | None = None,
        supervisor: ProcessSupervisor | None = None,
    ) -> None:
        """Initialize the engine; the launcher defaults to the Docker CLI.

        Example:
            ```python
            engine = DockerEngine(launcher=DockerLauncher(docker_context="remote"))
            ```
        """
        self._settings = settings or RunnerSettings()
        self._launcher = launcher or DockerLauncher(
            docker_binary=self._settings.docker_binary,
            docker_context=self._settings.docker_context,
        )
        self._supervisor = supervisor or ProcessSupervisor()
        self._workspaces = WorkspaceManager(
            scratch_root=self._settings.scratch_path,
            prefix=PROJECT_WORKSPACE_PREFIX,
        )

    @property
    def workspace_manager(self) -> WorkspaceManager:
        """Return the manager that owns Project-mode workspaces.

        Example:
            ```python
            manager = engine.workspace_manager
            ```
        """
        return self._workspaces

    def execute(self, request: ProjectRequest) -> ExecutionResult:
        """Execute one project request inside a fresh container.

        Example:
            ```python
            result = engine.execute(ProjectRequest(files=[ProjectFile("main.py", "print(1)")], language="python"))
            ```
        """
        result = run_sandboxed(self, request, supervisor=self._supervisor)
        if is_daemon_unreachable(result.exit_code, result.stderr):
            raise SpawnError(f"Container runtime unavailable: {result.stderr.strip()}")
        return result

    def validate(self, request: ProjectRequest) -> None:
        """Require a non-empty file list of well-formed entries.

        Example:
            ```python
            engine.validate(ProjectRequest(files=[ProjectFile("main.js", "")]))
            ```
        """
        if not isinstance(request.files, list) or not request.files:
            raise InvalidInputError("files[] required")
        for item in request.files:
            coerce_project_file(item)
        if request.command is not None and not isinstance(request.command, str):
            raise InvalidInputError("'command' must be a string")
        if request.language is not None and not isinstance(request.language, str):
            raise InvalidInputError("'language' must be a string")

    def materialize(self, workspace: Workspace, request: ProjectRequest) -> None:
        """Write each project file under the workspace root.

        Example:
            ```python
            engine.materialize(ws, request)
            ```
        """
        for item in map(coerce_project_file, request.files):
            self._workspaces.write(workspace, item.path, item.content)

    def plan(self, workspace: Workspace, request: ProjectRequest) -> LaunchPlan:
        """Build the container invocation, its deadline, and its kill hook.

        Example:
            ```python
            plan = engine.plan(ws, request)
            ```
        """
        runtime = select_runtime(request.language, self._settings)
        name = new_container_name()
        argv = self._launcher.build_run_command(
            name=name,
            image=runtime.image,
            workspace_dir=workspace.root,
            command=request.command or runtime.default_command,
        )
        return LaunchPlan(
            argv=argv,
            timeout_seconds=self._settings.container_timeout_seconds,
            on_timeout=lambda: self._launcher.kill(name),
            image_used=runtime.image,
            env=self._launcher.environment(),
        )
