from __future__ import annotations

import uuid
from dataclasses import dataclass

from ..settings import RunnerSettings

CONTAINER_WORKDIR = "/app"
CONTAINER_MEMORY_LIMIT = "512m"
CONTAINER_CPUS = "1"
CONTAINER_NETWORK = "none"
CONTAINER_SHELL = ("bash", "-lc")
CONTAINER_NAME_PREFIX = "scr-"
MANAGED_LABEL_VALUE = "true"
MANAGED_LABELS = {
    "safe_code_runner.managed": MANAGED_LABEL_VALUE,
    "safe_code_runner.engine": "docker",
}
DOCKER_DAEMON_ERROR_EXIT_CODE = 125
_DAEMON_UNREACHABLE_MARKERS = (
    "Cannot connect to the Docker daemon",
    "error during connect",
)


@dataclass(frozen=True, slots=True)
class ContainerRuntime:
    """Image and default entry command for one project language.

    Example:
        ```python
        runtime = ContainerRuntime(language="python", image="python:3.11", default_command="python main.py")
        ```
    """

    language: str
    image: str
    default_command: str


def select_runtime(language: str | None, settings: RunnerSettings) -> ContainerRuntime:
    """Map a project language to its runtime; anything but python selects Node.

    Example:
        ```python
        runtime = select_runtime("ruby", RunnerSettings())
        assert runtime.default_command == "node main.js"
        ```
    """
    if (language or "node").lower() == "python":
        return ContainerRuntime("python", settings.python_image, "python main.py")
    return ContainerRuntime("node", settings.node_image, "node main.js")


def new_container_name() -> str:
    """Return a collision-resistant name for one attempt's container.

    Example:
        ```python
        name = new_container_name()
        ```
    """
    return f"{CONTAINER_NAME_PREFIX}{uuid.uuid4().hex[:12]}"


def is_daemon_unreachable(exit_code: int | None, stderr: str) -> bool:
    """Tell a runtime failure apart from the user program's own exit status.

    Example:
        ```python
        down = is_daemon_unreachable(125, "Cannot connect to the Docker daemon at unix:///var/run/docker.sock")
        ```
    """
    if exit_code != DOCKER_DAEMON_ERROR_EXIT_CODE:
        return False
    return any(marker in stderr for marker in _DAEMON_UNREACHABLE_MARKERS)
