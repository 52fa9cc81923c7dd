"""Process-backed adapters."""

from protobuild.adapters.tools.command import CommandAdapter
from protobuild.adapters.tools.formatter import FormatterAdapter
from protobuild.adapters.tools.protoc import ProtocAdapter, bundled_include_dirs

__all__ = [
    "CommandAdapter",
    "FormatterAdapter",
    "ProtocAdapter",
    "bundled_include_dirs",
]
