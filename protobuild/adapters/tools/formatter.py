"""
Formatter adapter — the post-generation source normalizer.

Runs the configured formatter command (``ruff format`` by default) with
the formatting target appended by the action.
"""

from __future__ import annotations

from typing import Sequence

from protobuild.adapters.base import ExecutionContext
from protobuild.adapters.tools.command import CommandAdapter

DEFAULT_FORMATTER = ("ruff", "format")


class FormatterAdapter(CommandAdapter):
    """Rewrite sources in place with an external formatter."""

    def __init__(self, command: Sequence[str] = DEFAULT_FORMATTER):
        super().__init__(prefix=command, adapter_name="formatter")

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        if not context.action.argv:
            return False, "No formatting target given"
        return super().validate(context)
