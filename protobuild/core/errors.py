"""
Pipeline error taxonomy.

Every failure the codegen pipeline can surface is a CodegenError. The
message always names the failing schema, path, or tool so the build log
alone is enough to act on it.

Only FormatterInvocationError may be downgraded to a warning, and only
when formatter.strict is off.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any


class CodegenError(Exception):
    """Base class for pipeline failures."""

    stage = "pipeline"

    def __init__(
        self,
        message: str,
        *,
        path: Path | str | None = None,
        tool: str | None = None,
        detail: str = "",
    ):
        super().__init__(message)
        self.path = str(path) if path is not None else None
        self.tool = tool
        self.detail = detail

    @property
    def kind(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "stage": self.stage,
            "message": str(self),
            "path": self.path,
            "tool": self.tool,
            "detail": self.detail,
        }


class SchemaNotFound(CodegenError):
    """A Schema Set entry does not exist or cannot be read."""

    stage = "resolve"


class ImportResolutionError(CodegenError):
    """A schema import is not found in any include path."""

    stage = "resolve"

    def __init__(self, message: str, *, import_name: str, importer: Path | str, **kwargs: Any):
        super().__init__(message, path=importer, **kwargs)
        self.import_name = import_name

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["import"] = self.import_name
        return data


class GeneratorInvocationError(CodegenError):
    """The generator could not be launched, exited non-zero, or emitted nothing."""

    stage = "generate"


class OutputWriteError(CodegenError):
    """The output directory cannot be created or replaced."""

    stage = "generate"


class FormatterInvocationError(CodegenError):
    """The formatter could not be launched or exited non-zero."""

    stage = "format"


class WatchRegistrationError(CodegenError):
    """The watch list could not be recorded."""

    stage = "register"
