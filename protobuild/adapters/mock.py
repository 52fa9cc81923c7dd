"""
Mock adapter — test double for the generator and the formatter.

Records every execution context it receives. Responses come, in order of
precedence, from a failure set per action ID, from a handler callable
(which may write files to simulate a real tool), or from a default
success receipt.
"""

from __future__ import annotations

from typing import Callable

from protobuild.adapters.base import Adapter, ExecutionContext
from protobuild.core.models.action import Receipt

Handler = Callable[[ExecutionContext], Receipt | None]


class MockAdapter(Adapter):
    """Configurable fake tool.

    By default, returns success for everything and writes nothing.
    """

    def __init__(
        self,
        adapter_name: str = "mock",
        available: bool = True,
        default_output: str = "[mock] executed",
        handler: Handler | None = None,
    ):
        self._name = adapter_name
        self._available = available
        self._default_output = default_output
        self._handler = handler
        self._responses: dict[str, Receipt] = {}
        self._call_log: list[ExecutionContext] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[ExecutionContext]:
        """All execution contexts this mock has received."""
        return self._call_log

    @property
    def call_count(self) -> int:
        """Number of times execute has been called."""
        return len(self._call_log)

    @property
    def invocations(self) -> list[list[str]]:
        """The argv of every recorded call, in order."""
        return [ctx.action.argv for ctx in self._call_log]

    def is_available(self) -> bool:
        return self._available

    def set_failure(self, action_id: str, error: str = "Mock failure", return_code: int | None = 1) -> None:
        """Configure a specific action to fail."""
        self._responses[action_id] = Receipt.failure(
            adapter=self._name,
            action_id=action_id,
            error=error,
            return_code=return_code,
        )

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        self._call_log.append(context)

        if context.action.id in self._responses:
            return self._responses[context.action.id]

        if self._handler is not None:
            receipt = self._handler(context)
            if receipt is not None:
                return receipt

        return Receipt.success(
            adapter=self._name,
            action_id=context.action.id,
            output=self._default_output,
            command=list(context.action.argv),
            return_code=0,
            metadata={"mock": True},
        )

    def reset(self) -> None:
        """Clear call log and custom responses."""
        self._call_log.clear()
        self._responses.clear()
