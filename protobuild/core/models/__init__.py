"""Domain models — configuration, tool invocations, and the watch manifest."""

from protobuild.core.models.action import Action, Receipt
from protobuild.core.models.config import (
    CodegenConfig,
    FormatterSettings,
    GeneratorSettings,
    PostprocessSettings,
    WatchSettings,
)
from protobuild.core.models.manifest import MANIFEST_VERSION, WatchManifest

__all__ = [
    "Action",
    "CodegenConfig",
    "FormatterSettings",
    "GeneratorSettings",
    "MANIFEST_VERSION",
    "PostprocessSettings",
    "Receipt",
    "WatchManifest",
    "WatchSettings",
]
