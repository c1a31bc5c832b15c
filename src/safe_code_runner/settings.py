from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any


def _default_settings_path() -> Path:
    """Return bundled default settings TOML path.

    Example:
        ```python
        path = _default_settings_path()
        ```
    """
    return Path(__file__).with_name("default_settings.toml")


def _read_settings_toml(path: Path) -> dict[str, Any]:
    """Read settings TOML and return the settings table.

    Example:
        ```python
        raw = _read_settings_toml(Path("/etc/scr.toml"))
        ```
    """
    if not path.exists():
        return {}
    raw = tomllib.loads(path.read_text(encoding="utf-8"))
    settings_obj = raw.get("settings", raw)
    if not isinstance(settings_obj, dict):
        raise ValueError("Settings config must be a TOML table")
    return settings_obj


def _str_field(raw: dict[str, Any], name: str, default: str) -> str:
    """Validate a string field, falling back to its default when absent.

    Example:
        ```python
        image = _str_field({"python_image": "python:3.12"}, "python_image", "python:3.11")
        ```
    """
    value = raw.get(name, default)
    if not isinstance(value, str):
        raise ValueError(f"'{name}' must be a string")
    return value


def _timeout_field(raw: dict[str, Any], name: str, default: float) -> float:
    """Validate a positive timeout in seconds.

    Example:
        ```python
        seconds = _timeout_field({"direct_timeout_seconds": 8}, "direct_timeout_seconds", 8)
        ```
    """
    value = raw.get(name, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"'{name}' must be a number")
    if value <= 0:
        raise ValueError(f"'{name}' must be positive")
    return float(value)


_DEFAULT_SETTINGS_RAW = _read_settings_toml(_default_settings_path())
DEFAULT_SCRATCH_ROOT = _str_field(_DEFAULT_SETTINGS_RAW, "scratch_root", "")
DEFAULT_PYTHON_INTERPRETER = _str_field(_DEFAULT_SETTINGS_RAW, "python_interpreter", "python3")
DEFAULT_NODE_INTERPRETER = _str_field(_DEFAULT_SETTINGS_RAW, "node_interpreter", "node")
DEFAULT_DIRECT_TIMEOUT_SECONDS = _timeout_field(
    _DEFAULT_SETTINGS_RAW, "direct_timeout_seconds", 8
)
DEFAULT_PYTHON_IMAGE = _str_field(_DEFAULT_SETTINGS_RAW, "python_image", "python:3.11")
DEFAULT_NODE_IMAGE = _str_field(_DEFAULT_SETTINGS_RAW, "node_image", "node:18")
DEFAULT_CONTAINER_TIMEOUT_SECONDS = _timeout_field(
    _DEFAULT_SETTINGS_RAW, "container_timeout_seconds", 20
)
DEFAULT_DOCKER_BINARY = _str_field(_DEFAULT_SETTINGS_RAW, "docker_binary", "docker")
DEFAULT_DOCKER_CONTEXT = _str_field(_DEFAULT_SETTINGS_RAW, "docker_context", "")


@dataclass(frozen=True, slots=True)
class RunnerSettings:
    """Deployment settings shared by the Direct and Docker engines.

    Container isolation limits are fixed in the Docker launcher and are
    deliberately absent here.

    Example:
        ```python
        settings = RunnerSettings(direct_timeout_seconds=2, scratch_root="/var/tmp/scr")
        ```
    """

    scratch_root: str = DEFAULT_SCRATCH_ROOT
    python_interpreter: str = DEFAULT_PYTHON_INTERPRETER
    node_interpreter: str = DEFAULT_NODE_INTERPRETER
    direct_timeout_seconds: float = DEFAULT_DIRECT_TIMEOUT_SECONDS
    python_image: str = DEFAULT_PYTHON_IMAGE
    node_image: str = DEFAULT_NODE_IMAGE
    container_timeout_seconds: float = DEFAULT_CONTAINER_TIMEOUT_SECONDS
    docker_binary: str = DEFAULT_DOCKER_BINARY
    docker_context: str = DEFAULT_DOCKER_CONTEXT
    config_path: str | None = None

    def __post_init__(self) -> None:
        """Validate timeouts and binaries after dataclass initialization.

        Example:
            ```python
            RunnerSettings(direct_timeout_seconds=8)
            ```
        """
        if self.direct_timeout_seconds <= 0 or self.container_timeout_seconds <= 0:
            raise ValueError("timeouts must be positive")
        for name in ("python_interpreter", "node_interpreter", "docker_binary"):
            if not getattr(self, name).strip():
                raise ValueError(f"'{name}' must be non-empty")

    @property
    def scratch_path(self) -> Path | None:
        """Return the scratch root as a path, or None for the system temp dir.

        Example:
            ```python
            root = RunnerSettings(scratch_root="/var/tmp/scr").scratch_path
            ```
        """
        cleaned = self.scratch_root.strip()
        return Path(cleaned).expanduser() if cleaned else None

    @classmethod
    def from_file(cls, config_path: str) -> "RunnerSettings":
        """Create settings from a TOML file; absent keys keep bundled defaults.

        Example:
            ```python
            settings = RunnerSettings.from_file("/etc/scr.toml")
            ```
        """
        path = Path(config_path)
        if not path.exists():
            raise ValueError(f"Settings file not found: {config_path}")
        raw = _read_settings_toml(path)
        return cls(
            scratch_root=_str_field(raw, "scratch_root", DEFAULT_SCRATCH_ROOT),
            python_interpreter=_str_field(raw, "python_interpreter", DEFAULT_PYTHON_INTERPRETER),
            node_interpreter=_str_field(raw, "node_interpreter", DEFAULT_NODE_INTERPRETER),
            direct_timeout_seconds=_timeout_field(
                raw, "direct_timeout_seconds", DEFAULT_DIRECT_TIMEOUT_SECONDS
            ),
            python_image=_str_field(raw, "python_image", DEFAULT_PYTHON_IMAGE),
            node_image=_str_field(raw, "node_image", DEFAULT_NODE_IMAGE),
            container_timeout_seconds=_timeout_field(
                raw, "container_timeout_seconds", DEFAULT_CONTAINER_TIMEOUT_SECONDS
            ),
            docker_binary=_str_field(raw, "docker_binary", DEFAULT_DOCKER_BINARY),
            docker_context=_str_field(raw, "docker_context", DEFAULT_DOCKER_CONTEXT),
            config_path=config_path,
        )
