"""
Codegen configuration model — loaded from codegen.yml.

Every path in the file is relative to the directory holding codegen.yml
(the project root). The helpers on CodegenConfig turn them into absolute
paths for one build invocation; nothing here is cached between builds.
"""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator


class GeneratorSettings(BaseModel):
    """How the IDL-to-source generator is launched."""

    tool: Literal["grpc_tools", "protoc"] = "grpc_tools"
    executable: str | None = None     # protoc binary override
    grpc: bool = True                 # emit *_pb2_grpc.py client/server stubs
    pyi: bool = True                  # emit *_pb2.pyi type stubs
    well_known_types: bool = True     # resolve google/protobuf/*.proto imports
    timeout: float | None = None


class PostprocessSettings(BaseModel):
    """Rewrites applied to the generated tree before it replaces the output."""

    package_init: bool = True
    relative_imports: bool = True


class FormatterSettings(BaseModel):
    """How generated sources are normalized after generation."""

    enabled: bool = True
    command: list[str] = Field(default_factory=lambda: ["ruff", "format"])
    scope: Literal["output", "project"] = "output"
    strict: bool = True
    timeout: float | None = None

    @field_validator("command")
    @classmethod
    def _command_not_empty(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("formatter.command must name a program")
        return value


class WatchSettings(BaseModel):
    """Where and how the watch list is registered."""

    manifest: str = ".state/codegen-manifest.json"
    directive_prefix: str = "rerun-if-changed="


class CodegenConfig(BaseModel):
    """Root configuration for one codegen step."""

    version: int = 1
    name: str = "codegen"

    schemas: list[str] = Field(min_length=1)
    include_paths: list[str] = Field(default_factory=list)
    output_dir: str = "generated"

    generator: GeneratorSettings = Field(default_factory=GeneratorSettings)
    postprocess: PostprocessSettings = Field(default_factory=PostprocessSettings)
    formatter: FormatterSettings = Field(default_factory=FormatterSettings)
    watch: WatchSettings = Field(default_factory=WatchSettings)

    @field_validator("schemas", "include_paths")
    @classmethod
    def _dedupe_keep_order(cls, value: list[str]) -> list[str]:
        seen: set[str] = set()
        ordered = []
        for item in value:
            if item not in seen:
                seen.add(item)
                ordered.append(item)
        return ordered

    def schema_paths(self, root: Path) -> list[Path]:
        return [root / s for s in self.schemas]

    def include_dirs(self, root: Path) -> list[Path]:
        return [root / p for p in self.include_paths]

    def output_path(self, root: Path) -> Path:
        return root / self.output_dir

    def manifest_path(self, root: Path) -> Path:
        return root / self.watch.manifest

    def digest(self) -> str:
        """Stable hash of every setting that influences generated output.

        The watch settings only decide where registration lands, so they
        are left out.
        """
        payload = self.model_dump_json(exclude={"watch", "name"})
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()
