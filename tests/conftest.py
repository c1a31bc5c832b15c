import sys
from pathlib import Path
from typing import Callable

import pytest

from safe_code_runner import RunnerSettings


@pytest.fixture
def scratch(tmp_path: Path) -> Path:
    return tmp_path / "scratch"


@pytest.fixture
def settings(scratch: Path) -> RunnerSettings:
    return RunnerSettings(
        scratch_root=str(scratch),
        python_interpreter=sys.executable,
        direct_timeout_seconds=5,
        container_timeout_seconds=5,
    )


@pytest.fixture
def leftovers(scratch: Path) -> Callable[[], list[Path]]:
    def _list() -> list[Path]:
        if not scratch.exists():
            return []
        return list(scratch.iterdir())

    return _list
