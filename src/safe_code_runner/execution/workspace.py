from __future__ import annotations

import shutil
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

from loguru import logger

from ..errors import InvalidInputError, ResourceError

DEFAULT_FILE_NAME = "main.js"
_LEADING_SEPARATORS = "/\\"


@dataclass(slots=True)
class Workspace:
    """Scratch directory exclusively owned by one execution attempt.

    Example:
        ```python
        ws = Workspace(root=Path("/tmp/scr-run-abc123"))
        ```
    """

    root: Path
    destroyed: bool = False


def sanitize_relative_path(path: str | None) -> str:
    """Strip leading path separators so the path is relative to a workspace.

    Example:
        ```python
        assert sanitize_relative_path("/etc/passwd") == "etc/passwd"
        ```
    """
    return (path or "").lstrip(_LEADING_SEPARATORS)


class WorkspaceManager:
    """Create, populate, and remove per-attempt scratch directories.

    Example:
        ```python
        manager = WorkspaceManager(scratch_root=Path("/var/tmp/scr"), prefix="scr-run-")
        ```
    """

    def __init__(self, *, scratch_root: Path | None = None, prefix: str = "scr-") -> None:
        """Initialize the manager; None selects the system temp directory.

        Example:
            ```python
            manager = WorkspaceManager(prefix="scr-project-")
            ```
        """
        self._scratch_root = scratch_root
        self._prefix = prefix

    def create(self) -> Workspace:
        """Allocate a fresh, uniquely named workspace directory.

        Example:
            ```python
            ws = manager.create()
            ```
        """
        try:
            if self._scratch_root is not None:
                self._scratch_root.mkdir(parents=True, exist_ok=True)
            root = tempfile.mkdtemp(
                prefix=self._prefix,
                dir=str(self._scratch_root) if self._scratch_root is not None else None,
            )
        except OSError as exc:
            raise ResourceError(f"Failed to create workspace: {exc}") from exc
        workspace = Workspace(root=Path(root).resolve())
        logger.debug(f"Created workspace {workspace.root}")
        return workspace

    def write(self, workspace: Workspace, relative_path: str | None, content: str | None) -> Path:
        """Write one file under the workspace, creating parent directories.

        Example:
            ```python
            target = manager.write(ws, "src/app.py", "print('hi')")
            ```
        """
        safe = sanitize_relative_path(relative_path) or DEFAULT_FILE_NAME
        if "\x00" in safe:
            raise InvalidInputError(f"File path contains a NUL byte: {relative_path!r}")
        target = (workspace.root / safe).resolve()
        if target == workspace.root or not target.is_relative_to(workspace.root):
            raise InvalidInputError(f"File path escapes the workspace: {relative_path!r}")
        try:
            data = (content or "").encode("utf-8")
        except UnicodeEncodeError as exc:
            raise InvalidInputError(f"Content of {safe} is not valid UTF-8 text: {exc.reason}") from exc
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            raise ResourceError(f"Failed to write {safe}: {exc}") from exc
        return target

    def destroy(self, workspace: Workspace) -> None:
        """Recursively remove the workspace; failures are logged, never raised.

        Example:
            ```python
            manager.destroy(ws)
            ```
        """
        if workspace.destroyed:
            return
        workspace.destroyed = True
        try:
            shutil.rmtree(workspace.root)
        except FileNotFoundError:
            return
        except OSError as exc:
            logger.warning(f"Failed to remove workspace {workspace.root}: {exc}")
            return
        logger.debug(f"Removed workspace {workspace.root}")

    @contextmanager
    def session(self) -> Iterator[Workspace]:
        """Yield a new workspace and destroy it on every exit path.

        Example:
            ```python
            with manager.session() as ws:
                manager.write(ws, "main.py", "print(1)")
            ```
        """
        workspace = self.create()
        try:
            yield workspace
        finally:
            self.destroy(workspace)
