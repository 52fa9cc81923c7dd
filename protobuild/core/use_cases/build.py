"""
Build use case — run the codegen pipeline for a codegen.yml.

This is the top-level entry: it loads config, wires the generator and
formatter adapters, runs the pipeline, and folds any failure into the
result so the CLI can report it and exit non-zero.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from protobuild.adapters.registry import AdapterRegistry
from protobuild.adapters.tools.formatter import FormatterAdapter
from protobuild.adapters.tools.protoc import ProtocAdapter, bundled_include_dirs
from protobuild.core.config.loader import ConfigError, find_config_file, load_config, project_root
from protobuild.core.engine.pipeline import CodegenPipeline, PipelineReport
from protobuild.core.errors import CodegenError
from protobuild.core.models.config import CodegenConfig

logger = logging.getLogger(__name__)


@dataclass
class BuildResult:
    """Result of one build invocation."""

    config: CodegenConfig | None = None
    config_path: Path | None = None
    project_root: Path | None = None
    report: PipelineReport | None = None
    error: str | None = None
    error_kind: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.report is not None and self.report.ok

    def to_dict(self) -> dict:
        result: dict = {"ok": self.ok}
        if self.config_path:
            result["config_path"] = str(self.config_path)
        if self.report:
            result["report"] = self.report.to_dict()
        if self.error:
            result["error"] = self.error
            result["error_kind"] = self.error_kind
        return result


def default_registry(config: CodegenConfig) -> AdapterRegistry:
    """Registry with the real generator and formatter for ``config``."""
    registry = AdapterRegistry()
    registry.register(ProtocAdapter(tool=config.generator.tool, executable=config.generator.executable))
    registry.register(FormatterAdapter(command=config.formatter.command))
    return registry


def load(config_path: Path | None) -> tuple[CodegenConfig, Path, Path]:
    """Locate and load codegen.yml.

    Returns:
        (config, config_path, project_root)

    Raises:
        ConfigError: No config found, or it is invalid.
    """
    if config_path is None:
        config_path = find_config_file()
    if config_path is None:
        raise ConfigError("No codegen.yml found.")
    config = load_config(config_path)
    return config, config_path, project_root(config_path)


def run_build(
    config_path: Path | None = None,
    force: bool = False,
    dry_run: bool = False,
    registry: AdapterRegistry | None = None,
    builtin_includes: Sequence[Path] | None = None,
) -> BuildResult:
    """Run the codegen pipeline.

    Args:
        config_path: Optional explicit path to codegen.yml.
        force: Regenerate even when nothing changed.
        dry_run: Resolve inputs and validate tool calls only.
        registry: Optional pre-configured adapter registry.
        builtin_includes: Override for the generator's bundled include dirs.

    Returns:
        BuildResult; ``error`` is set when the build failed.
    """
    result = BuildResult()

    try:
        config, config_path, root = load(config_path)
    except ConfigError as e:
        result.error = str(e)
        result.error_kind = "ConfigError"
        return result

    result.config, result.config_path, result.project_root = config, config_path, root

    if registry is None:
        registry = default_registry(config)
    if builtin_includes is None:
        builtin_includes = bundled_include_dirs(config.generator.tool, config.generator.executable)

    pipeline = CodegenPipeline(config, root, registry, builtin_includes=builtin_includes)
    try:
        pipeline.run(force=force, dry_run=dry_run)
    except CodegenError as e:
        result.error = str(e)
        result.error_kind = e.kind
    result.report = pipeline.report

    return result
