from .errors import ExecutionError, InvalidInputError, ResourceError, SpawnError
from .execution.direct_engine import DirectEngine
from .execution.docker_engine import DockerEngine, DockerLauncher
from .execution.types import ExecutionResult, ProjectFile, ProjectRequest, SingleFileRequest
from .runner import execute_payload, parse_request, run_code, run_project
from .settings import RunnerSettings

__all__ = [
    "DirectEngine",
    "DockerEngine",
    "DockerLauncher",
    "ExecutionError",
    "ExecutionResult",
    "InvalidInputError",
    "ProjectFile",
    "ProjectRequest",
    "ResourceError",
    "RunnerSettings",
    "SingleFileRequest",
    "SpawnError",
    "execute_payload",
    "parse_request",
    "run_code",
    "run_project",
]
