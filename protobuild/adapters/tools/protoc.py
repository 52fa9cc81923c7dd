"""
Protoc adapter — the IDL-to-source generator.

Two launch modes:
    grpc_tools   ``python -m grpc_tools.protoc`` from the grpcio-tools wheel
                 (bundles protoc, the grpc python plugin and the
                 well-known .proto files)
    protoc       a protoc binary on PATH (or ``executable``), with
                 grpc_python_plugin expected alongside it
"""

from __future__ import annotations

import importlib.util
import logging
import shutil
import sys
from importlib import resources
from pathlib import Path

from protobuild.adapters.base import ExecutionContext
from protobuild.adapters.tools.command import CommandAdapter

logger = logging.getLogger(__name__)


class ProtocAdapter(CommandAdapter):
    """Run protoc with the action's arguments."""

    def __init__(self, tool: str = "grpc_tools", executable: str | None = None):
        self.tool = tool
        self.executable = executable
        if tool == "grpc_tools":
            prefix = [sys.executable, "-m", "grpc_tools.protoc"]
        else:
            prefix = [executable or "protoc"]
        super().__init__(prefix=prefix, adapter_name="protoc")

    @property
    def program(self) -> str:
        return "grpc_tools.protoc" if self.tool == "grpc_tools" else self._prefix[0]

    def is_available(self) -> bool:
        if self.tool == "grpc_tools":
            return importlib.util.find_spec("grpc_tools") is not None
        return super().is_available()

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        argv = context.action.argv
        if not any(arg.startswith("--") and "_out=" in arg for arg in argv):
            return False, "No output flag (--*_out=DIR) in generator arguments"
        if not any(arg.endswith(".proto") for arg in argv):
            return False, "No .proto inputs in generator arguments"
        return super().validate(context)


def bundled_include_dirs(tool: str = "grpc_tools", executable: str | None = None) -> list[Path]:
    """Directories holding the generator's own well-known .proto files.

    These back imports such as ``google/protobuf/timestamp.proto`` that no
    project include path provides.
    """
    dirs: list[Path] = []

    if importlib.util.find_spec("grpc_tools") is not None:
        bundled = Path(str(resources.files("grpc_tools") / "_proto"))
        if bundled.is_dir():
            dirs.append(bundled)

    if tool == "protoc":
        found = shutil.which(executable or "protoc")
        if found:
            # <prefix>/bin/protoc ships its includes in <prefix>/include
            candidate = Path(found).resolve().parent.parent / "include"
            if candidate.is_dir():
                dirs.append(candidate)

    logger.debug("Bundled generator includes: %s", dirs)
    return dirs
