from pathlib import Path
from typing import Callable

import pytest

from safe_code_runner import (
    DirectEngine,
    ExecutionResult,
    InvalidInputError,
    ProjectFile,
    ProjectRequest,
    RunnerSettings,
    SingleFileRequest,
    SpawnError,
    execute_payload,
    parse_request,
    run_code,
)


class _RecordingEngine:
    def __init__(self, result: ExecutionResult) -> None:
        self.result = result
        self.requests: list[object] = []

    def execute(self, request: object) -> ExecutionResult:
        self.requests.append(request)
        return self.result


def test_parse_direct_request_defaults_to_javascript() -> None:
    request = parse_request({"code": "console.log(1)"})

    assert request == SingleFileRequest(code="console.log(1)", language="javascript")


def test_parse_project_request() -> None:
    request = parse_request(
        {
            "files": [{"path": "main.py", "content": "print(1)"}, {"path": "empty.txt"}],
            "language": "python",
            "command": "python main.py --verbose",
        }
    )

    assert isinstance(request, ProjectRequest)
    assert request.files == [ProjectFile("main.py", "print(1)"), ProjectFile("empty.txt", None)]
    assert request.language == "python"
    assert request.command == "python main.py --verbose"


@pytest.mark.parametrize(
    "payload, message",
    [
        ({}, "Code required"),
        ({"code": ""}, "Code required"),
        ({"code": 42}, "Code required"),
        ({"files": []}, "files"),
        ({"files": "main.js"}, "files"),
        ({"files": [{"path": 1}]}, "path"),
        ({"files": [{"path": "a.js"}], "command": ["ls"]}, "command"),
        ({"code": "1", "language": 3}, "language"),
        (["code"], "JSON object"),
    ],
)
def test_parse_rejects_malformed_payloads(payload: object, message: str) -> None:
    with pytest.raises(InvalidInputError, match=message):
        parse_request(payload)


def test_execute_payload_routes_by_mode() -> None:
    direct = _RecordingEngine(ExecutionResult("hi\n", "", 0, False))
    project = _RecordingEngine(ExecutionResult("", "", 0, False, image_used="node:18"))

    direct_body = execute_payload(
        {"code": "console.log('hi')"}, direct_engine=direct, project_engine=project
    )
    project_body = execute_payload(
        {"files": [{"path": "main.js", "content": ""}]}, direct_engine=direct, project_engine=project
    )

    assert direct_body == {"stdout": "hi\n", "stderr": "", "exitCode": 0, "timedOut": False}
    assert project_body == {
        "stdout": "",
        "stderr": "",
        "exitCode": 0,
        "timedOut": False,
        "imageUsed": "node:18",
    }
    assert len(direct.requests) == 1 and len(project.requests) == 1


def test_execute_payload_runs_real_direct_engine(settings: RunnerSettings) -> None:
    body = execute_payload(
        {"code": "print('hello')", "language": "python"}, direct_engine=DirectEngine(settings)
    )

    assert body == {"stdout": "hello\n", "stderr": "", "exitCode": 0, "timedOut": False}


def test_unencodable_code_is_invalid_input(
    settings: RunnerSettings, leftovers: Callable[[], list[Path]]
) -> None:
    with pytest.raises(InvalidInputError) as excinfo:
        execute_payload(
            {"code": "print('\ud800')", "language": "python"}, direct_engine=DirectEngine(settings)
        )

    assert excinfo.value.to_dict()["error"] == "invalid_input"
    assert leftovers() == []


def test_errors_serialize_to_structured_body() -> None:
    assert InvalidInputError("Code required").to_dict() == {
        "error": "invalid_input",
        "message": "Code required",
    }
    assert SpawnError("docker missing").to_dict()["error"] == "spawn"


def test_engine_and_settings_are_mutually_exclusive(settings: RunnerSettings) -> None:
    with pytest.raises(ValueError, match="either 'engine' or 'settings'"):
        run_code("1", engine=DirectEngine(settings), settings=settings)
