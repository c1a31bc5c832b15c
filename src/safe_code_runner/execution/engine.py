from __future__ import annotations

from typing import Protocol, TypeVar

from .types import ExecutionResult

RequestT = TypeVar("RequestT", contravariant=True)


class ExecutionEngine(Protocol[RequestT]):
    def execute(self, request: RequestT) -> ExecutionResult:
        """Execute one request and return its immutable result.

        Example:
            ```python
            result = engine.execute(SingleFileRequest(code="console.log(1)"))
            ```
        """
        ...
