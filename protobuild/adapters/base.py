"""
Adapter base — the contract between the pipeline and external tools.

The pipeline only talks to the generator and the formatter through this
protocol, never by spawning processes itself. Tests substitute a
MockAdapter that records invocations and returns canned receipts.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from pydantic import BaseModel

from protobuild.core.models.action import Action, Receipt


class ExecutionContext(BaseModel):
    """Everything an adapter needs to run one action."""

    action: Action
    project_root: str = "."
    dry_run: bool = False

    @property
    def working_dir(self) -> str:
        """Resolved working directory for the invocation."""
        return self.action.cwd or self.project_root


class Adapter(ABC):
    """Abstract base class for all tool adapters.

    Adapters perform the external side effect and return a Receipt.
    They NEVER raise; failures are captured in the Receipt.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The adapter identifier (e.g., 'protoc', 'formatter')."""

    @property
    def program(self) -> str:
        """Label of the launched program, for status and error messages."""
        return self.name

    @abstractmethod
    def is_available(self) -> bool:
        """Check whether the underlying tool can be launched. Never raises."""

    @abstractmethod
    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        """Validate that the action can be executed.

        Returns:
            (is_valid, error_message). error_message is empty if valid.
        """

    @abstractmethod
    def execute(self, context: ExecutionContext) -> Receipt:
        """Run the action and return a receipt. MUST never raise."""

    def invoke(self, args: Sequence[str], cwd: str | None = None) -> Receipt:
        """Run the tool once with ``args``, outside of any pipeline."""
        action = Action(id=f"{self.name}:invoke", adapter=self.name, argv=list(args), cwd=cwd)
        return self.execute(ExecutionContext(action=action, project_root=cwd or "."))

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
