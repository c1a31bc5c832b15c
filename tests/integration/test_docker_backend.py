import os
import shutil
from pathlib import Path

import pytest

from safe_code_runner import DockerEngine, ProjectFile, ProjectRequest, RunnerSettings, run_project


def _docker_ready() -> bool:
    if shutil.which("docker") is None:
        return False
    return os.getenv("RUN_DOCKER_TESTS") == "1"


pytestmark = pytest.mark.skipif(not _docker_ready(), reason="Docker integration tests disabled")


@pytest.fixture
def engine(tmp_path: Path) -> DockerEngine:
    return DockerEngine(RunnerSettings(scratch_root=str(tmp_path / "scratch")))


def test_docker_python_project(engine: DockerEngine) -> None:
    result = run_project(
        [
            {"path": "main.py", "content": "from lib.greet import hi\nhi()"},
            {"path": "lib/__init__.py", "content": ""},
            {"path": "lib/greet.py", "content": "def hi():\n    print('hi from container')"},
        ],
        language="python",
        engine=engine,
    )
    assert result.exit_code == 0
    assert result.stdout == "hi from container\n"
    assert result.image_used == "python:3.11"


def test_docker_node_project_is_default(engine: DockerEngine) -> None:
    result = engine.execute(ProjectRequest(files=[ProjectFile("main.js", "console.log(6 * 7)")]))
    assert result.exit_code == 0
    assert result.stdout == "42\n"
    assert result.image_used == "node:18"


def test_docker_has_no_network(engine: DockerEngine) -> None:
    code = (
        "import socket\n"
        "try:\n"
        "    socket.create_connection(('1.1.1.1', 53), timeout=2)\n"
        "    print('online')\n"
        "except OSError:\n"
        "    print('offline')\n"
    )
    result = engine.execute(
        ProjectRequest(files=[ProjectFile("main.py", code)], language="python")
    )
    assert result.stdout == "offline\n"


def test_docker_memory_cap_kills_hog(engine: DockerEngine) -> None:
    result = engine.execute(
        ProjectRequest(
            files=[ProjectFile("main.py", "x = bytearray(1024 * 1024 * 1024)\nprint('allocated')")],
            language="python",
        )
    )
    assert "allocated" not in result.stdout
    assert result.exit_code != 0


def test_docker_timeout_kills_container(tmp_path: Path) -> None:
    engine = DockerEngine(
        RunnerSettings(scratch_root=str(tmp_path / "scratch"), container_timeout_seconds=5)
    )
    result = engine.execute(
        ProjectRequest(
            files=[ProjectFile("main.py", "import time\nprint('up', flush=True)\ntime.sleep(600)")],
            language="python",
        )
    )
    assert result.timed_out is True
    assert result.exit_code is None
    assert list((tmp_path / "scratch").iterdir()) == []
