from .direct_engine import DirectEngine
from .docker_engine import ContainerLauncher, DockerEngine, DockerLauncher
from .engine import ExecutionEngine
from .types import ExecutionRequest, ExecutionResult, ProjectFile, ProjectRequest, SingleFileRequest

__all__ = [
    "ContainerLauncher",
    "DirectEngine",
    "DockerEngine",
    "DockerLauncher",
    "ExecutionEngine",
    "ExecutionRequest",
    "ExecutionResult",
    "ProjectFile",
    "ProjectRequest",
    "SingleFileRequest",
]
