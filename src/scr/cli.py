from __future__ import annotations

import argparse
import shutil
import sys
from functools import partial
from pathlib import Path
from typing import Any, Never, Sequence

from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich_argparse import RawTextRichHelpFormatter
from safe_code_runner import (
    DirectEngine,
    DockerEngine,
    ExecutionError,
    ExecutionResult,
    ProjectFile,
    RunnerSettings,
    run_code,
    run_project,
)
from safe_code_runner.execution.docker_engine import docker_is_available

_CONSOLE = Console(no_color=False)
TIMEOUT_EXIT_CODE = 124
ERROR_EXIT_CODE = 2
_SKIPPED_DIRS = {".git", "node_modules", "__pycache__", ".venv"}


class _CLIHelpFormatter(RawTextRichHelpFormatter):
    """Rich formatter with explicit high-contrast CLI styles.

    Example:
        ```python
        parser = argparse.ArgumentParser(formatter_class=_CLIHelpFormatter)
        ```
    """

    styles = {
        "argparse.args": "bold cyan",
        "argparse.groups": "bold magenta",
        "argparse.help": "white",
        "argparse.metavar": "bold yellow",
        "argparse.prog": "bold bright_blue",
        "argparse.syntax": "bold bright_white",
        "argparse.text": "bright_white",
    }


_HELP_FORMATTER = partial(
    _CLIHelpFormatter,
    max_help_position=34,
    width=120,
)


class _RichArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that renders errors via Rich.

    Example:
        ```python
        parser = _RichArgumentParser(prog="python -m scr")
        ```
    """

    def error(self, message: str) -> Never:
        """Render parse errors with Rich and exit.

        Example:
            ```python
            # parser.error("invalid usage")
            ```
        """
        _CONSOLE.print(Panel.fit(f"[bold red]Error:[/bold red] {message}", border_style="red"))
        self.print_help()
        raise SystemExit(ERROR_EXIT_CODE)


def build_parser() -> argparse.ArgumentParser:
    """Build CLI parser for running code through the sandbox engines.

    Example:
        ```python
        parser = build_parser()
        ```
    """
    parser = _RichArgumentParser(
        prog="python -m scr",
        description=(
            "safe-code-runner CLI\n"
            "Run a single file with a host interpreter, or a project directory\n"
            "inside a disposable, network-less container."
        ),
        epilog=(
            "Quick Examples:\n"
            "  python -m scr run hello.py --language python\n"
            "  python -m scr project ./app --language python\n"
            "  python -m scr project ./app --command 'npm test'\n"
            "  python -m scr doctor"
        ),
        formatter_class=_HELP_FORMATTER,
    )
    parser.add_argument(
        "--config",
        help=(
            "Path to a settings TOML file.\n"
            "Example: --config /etc/scr.toml"
        ),
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level for runner diagnostics on stderr (default: WARNING).",
    )

    sub = parser.add_subparsers(
        dest="command",
        required=True,
        parser_class=_RichArgumentParser,
    )

    run_cmd = sub.add_parser(
        "run",
        help="Run one source file on the host (Direct mode).",
        description=(
            "Run one source file with a host interpreter in a scratch directory.\n"
            "Bounded by the Direct-mode deadline (default: 8s)."
        ),
        epilog=(
            "Examples:\n"
            "  python -m scr run hello.js\n"
            "  python -m scr run hello.py --language python"
        ),
        formatter_class=_HELP_FORMATTER,
    )
    run_cmd.add_argument("file", type=Path)
    run_cmd.add_argument(
        "--language",
        help="'python' or anything else for JavaScript (default: from file extension).",
    )

    project_cmd = sub.add_parser(
        "project",
        help="Run a project directory in a container (Project mode).",
        description=(
            "Copy every file of a directory into a fresh workspace and run it\n"
            "in a transient container: no network, 512 MiB memory, 1 CPU."
        ),
        epilog=(
            "Examples:\n"
            "  python -m scr project ./app --language python\n"
            "  python -m scr project ./app --command 'node index.js'"
        ),
        formatter_class=_HELP_FORMATTER,
    )
    project_cmd.add_argument("directory", type=Path)
    project_cmd.add_argument(
        "--language",
        default="node",
        help="'python' or anything else for Node (default: node).",
    )
    project_cmd.add_argument(
        "--command",
        dest="entry_command",
        help="Shell command run inside the container (default: per language).",
    )

    sub.add_parser(
        "doctor",
        help="Check interpreters and the container runtime.",
        description="Show whether each interpreter and the Docker daemon are reachable.",
        formatter_class=_HELP_FORMATTER,
    )

    return parser


def build_settings(args: argparse.Namespace) -> RunnerSettings:
    """Load settings from --config or fall back to bundled defaults.

    Example:
        ```python
        settings = build_settings(args)
        ```
    """
    if args.config:
        return RunnerSettings.from_file(args.config)
    return RunnerSettings()


def _configure_logging(level: str) -> None:
    """Route loguru output to stderr at the requested level.

    Example:
        ```python
        _configure_logging("DEBUG")
        ```
    """
    logger.remove()
    logger.add(sys.stderr, level=level)


def _guess_language(path: Path) -> str:
    """Infer the Direct-mode language from a file extension.

    Example:
        ```python
        lang = _guess_language(Path("hello.py"))
        ```
    """
    return "python" if path.suffix == ".py" else "javascript"


def collect_project_files(directory: Path) -> list[ProjectFile]:
    """Read every text file of a directory as project files.

    Example:
        ```python
        files = collect_project_files(Path("./app"))
        ```
    """
    files: list[ProjectFile] = []
    for path in sorted(directory.rglob("*")):
        relative = path.relative_to(directory)
        if not path.is_file() or _SKIPPED_DIRS.intersection(relative.parts):
            continue
        files.append(
            ProjectFile(
                path=relative.as_posix(),
                content=path.read_text(encoding="utf-8", errors="replace"),
            )
        )
    return files


def _print_result(result: ExecutionResult, title: str) -> None:
    """Render captured output and exit status.

    Example:
        ```python
        _print_result(result, "Direct run")
        ```
    """
    if result.stdout:
        _CONSOLE.print(Panel(Text(result.stdout), title="stdout", border_style="cyan"))
    if result.stderr:
        _CONSOLE.print(Panel(Text(result.stderr), title="stderr", border_style="yellow"))
    table = Table(title=title)
    table.add_column("Exit Code", style="cyan")
    table.add_column("Timed Out", style="magenta")
    table.add_column("Image")
    table.add_row(
        "-" if result.exit_code is None else str(result.exit_code),
        "yes" if result.timed_out else "no",
        result.image_used or "-",
    )
    _CONSOLE.print(table)


def _exit_code_for(result: ExecutionResult) -> int:
    """Mirror the program's exit status; timeouts map to 124.

    A child killed by signal N reports `-N`; shells show that as `128 + N`.

    Example:
        ```python
        code = _exit_code_for(result)
        ```
    """
    if result.timed_out or result.exit_code is None:
        return TIMEOUT_EXIT_CODE
    if result.exit_code < 0:
        return 128 - result.exit_code
    return result.exit_code


def _doctor_rows(settings: RunnerSettings) -> list[dict[str, Any]]:
    """Probe interpreters and the Docker daemon.

    Example:
        ```python
        rows = _doctor_rows(RunnerSettings())
        ```
    """
    rows: list[dict[str, Any]] = []
    for label, binary in (
        ("python", settings.python_interpreter),
        ("javascript", settings.node_interpreter),
    ):
        found = shutil.which(binary)
        rows.append(
            {
                "component": f"{label} interpreter",
                "ok": found is not None,
                "detail": found or f"{binary} not found on PATH",
            }
        )
    ok, reason = docker_is_available(
        docker_binary=settings.docker_binary,
        docker_context=settings.docker_context or None,
    )
    rows.append({"component": "docker", "ok": ok, "detail": reason or "daemon reachable"})
    return rows


def main(argv: Sequence[str] | None = None) -> int:
    """Run the `scr` CLI command handler.

    Example:
        ```python
        code = main(["run", "hello.py"])
        ```
    """
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    _configure_logging(args.log_level)

    try:
        settings = build_settings(args)
    except ValueError as exc:
        _CONSOLE.print(Panel.fit(f"[bold red]Invalid settings:[/bold red] {exc}", border_style="red"))
        return ERROR_EXIT_CODE

    try:
        if args.command == "run":
            if not args.file.is_file():
                _CONSOLE.print(Panel.fit(f"No such file: {args.file}", style="bold red"))
                return 1
            code = args.file.read_text(encoding="utf-8")
            language = args.language or _guess_language(args.file)
            result = run_code(code, language, engine=DirectEngine(settings))
            _print_result(result, f"Direct run ({language})")
            return _exit_code_for(result)
        if args.command == "project":
            if not args.directory.is_dir():
                _CONSOLE.print(Panel.fit(f"No such directory: {args.directory}", style="bold red"))
                return 1
            result = run_project(
                collect_project_files(args.directory),
                args.language,
                args.entry_command,
                engine=DockerEngine(settings),
            )
            _print_result(result, "Project run")
            return _exit_code_for(result)
    except ExecutionError as exc:
        _CONSOLE.print(Panel.fit(f"[bold red]{exc.code}:[/bold red] {exc}", border_style="red"))
        return ERROR_EXIT_CODE

    if args.command == "doctor":
        rows = _doctor_rows(settings)
        table = Table(title="Runtime Check")
        table.add_column("Component", style="cyan")
        table.add_column("Status", style="magenta")
        table.add_column("Detail")
        for row in rows:
            table.add_row(row["component"], "ok" if row["ok"] else "missing", row["detail"])
        _CONSOLE.print(table)
        return 0 if all(row["ok"] for row in rows) else 1

    parser.error("Unhandled command")
    return ERROR_EXIT_CODE
