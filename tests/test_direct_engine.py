import shutil
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from pathlib import Path
from typing import Callable

import pytest

from safe_code_runner import (
    DirectEngine,
    InvalidInputError,
    RunnerSettings,
    SingleFileRequest,
    SpawnError,
    run_code,
)
from safe_code_runner.execution.direct_engine import select_interpreter


def test_hello_output_fidelity(settings: RunnerSettings) -> None:
    result = run_code("print('hello')", "python", settings=settings)

    assert result.stdout == "hello\n"
    assert result.stderr == ""
    assert result.exit_code == 0
    assert result.timed_out is False
    assert result.image_used is None
    assert result.ok


def test_nonzero_exit_and_stderr(settings: RunnerSettings) -> None:
    result = run_code("raise SystemExit('bad input')", "python", settings=settings)

    assert result.exit_code == 1
    assert "bad input" in result.stderr
    assert result.ok is False


def test_infinite_loop_times_out_with_partial_output(settings: RunnerSettings) -> None:
    fast = replace(settings, direct_timeout_seconds=1)
    code = "import time\nprint('tick', flush=True)\nwhile True:\n    time.sleep(0.01)"

    started = time.monotonic()
    result = run_code(code, "python", settings=fast)

    assert time.monotonic() - started < 5
    assert result.timed_out is True
    assert result.exit_code is None
    assert result.stdout == "tick\n"


def test_workspace_removed_after_success_and_timeout(
    settings: RunnerSettings, leftovers: Callable[[], list[Path]]
) -> None:
    engine = DirectEngine(replace(settings, direct_timeout_seconds=1))

    engine.execute(SingleFileRequest("print(1)", "python"))
    engine.execute(SingleFileRequest("while True: pass", "python"))

    assert leftovers() == []


def test_empty_code_is_rejected_before_workspace(
    settings: RunnerSettings, leftovers: Callable[[], list[Path]]
) -> None:
    with pytest.raises(InvalidInputError, match="Code required"):
        run_code("", "python", settings=settings)

    assert leftovers() == []


def test_missing_interpreter_is_spawn_error_and_cleans_up(
    settings: RunnerSettings, leftovers: Callable[[], list[Path]]
) -> None:
    broken = replace(settings, python_interpreter="/nonexistent/python-scr")

    with pytest.raises(SpawnError):
        run_code("print(1)", "python", settings=broken)

    assert leftovers() == []


def test_unrecognized_language_selects_javascript() -> None:
    settings = RunnerSettings()

    assert select_interpreter("ruby", settings).interpreter == settings.node_interpreter
    assert select_interpreter(None, settings).file_name == "main.js"
    assert select_interpreter("python", settings).file_name == "main.py"


def test_concurrent_runs_are_isolated(settings: RunnerSettings) -> None:
    engine = DirectEngine(settings)
    code = "import os\nprint({tag!r}, sorted(os.listdir('.')))"

    with ThreadPoolExecutor(max_workers=2) as pool:
        first, second = pool.map(
            lambda tag: engine.execute(SingleFileRequest(code.format(tag=tag), "python")),
            ["alpha", "beta"],
        )

    assert first.stdout == "alpha ['main.py']\n"
    assert second.stdout == "beta ['main.py']\n"


@pytest.mark.skipif(shutil.which("node") is None, reason="node is not installed")
def test_javascript_runs_with_node(settings: RunnerSettings) -> None:
    result = run_code("console.log('hi from node')", "javascript", settings=settings)

    assert result.stdout == "hi from node\n"
    assert result.exit_code == 0
