from __future__ import annotations


class ExecutionError(Exception):
    """Base class for errors that abort an execution attempt.

    Example:
        ```python
        raise ExecutionError("attempt aborted")
        ```
    """

    code = "execution"

    def to_dict(self) -> dict[str, str]:
        """Return the structured error body handed back to callers.

        Example:
            ```python
            body = InvalidInputError("Code required").to_dict()
            ```
        """
        return {"error": self.code, "message": str(self)}


class InvalidInputError(ExecutionError, ValueError):
    """Request fields are missing, malformed, or try to escape the workspace.

    Example:
        ```python
        raise InvalidInputError("files[] required")
        ```
    """

    code = "invalid_input"


class ResourceError(ExecutionError, RuntimeError):
    """Workspace directory or file could not be created.

    Example:
        ```python
        raise ResourceError("No space left on device")
        ```
    """

    code = "resource"


class SpawnError(ExecutionError, RuntimeError):
    """Interpreter or container runtime could not be launched.

    Example:
        ```python
        raise SpawnError("Executable not found: node")
        ```
    """

    code = "spawn"
