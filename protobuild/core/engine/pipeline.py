"""
Codegen pipeline — the per-build orchestration.

One build is one deterministic, strictly sequential attempt:

    Idle → Resolving Inputs → Generating → Formatting → Registered
                      └──────────────┴────────────┴──→ Failed

A build whose resolved inputs, configuration and generated tree all
match the last manifest goes straight from Resolving Inputs to
Registered without touching the generator or the formatter.

The previous output is kept aside until the build is registered; a
formatting or registration failure puts it back, so a failed build never
leaves a half-finished tree behind.

Errors propagate as CodegenError after the report records the failure;
nothing is retried here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Sequence

from protobuild.adapters.registry import AdapterRegistry
from protobuild.core.errors import CodegenError
from protobuild.core.models.config import CodegenConfig
from protobuild.core.persistence.manifest_file import load_manifest
from protobuild.core.services.formatting import FormatResult, normalize_sources
from protobuild.core.services.generation import (
    GenerationResult,
    discard_previous,
    generate_bindings,
    restore_previous,
)
from protobuild.core.services.schema_resolver import resolve_inputs
from protobuild.core.services.watch import (
    Freshness,
    WatchList,
    build_watch_list,
    check_freshness,
    register_watch_list,
    render_directives,
    tree_digests,
)

logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    IDLE = "idle"
    RESOLVING = "resolving_inputs"
    GENERATING = "generating"
    FORMATTING = "formatting"
    REGISTERED = "registered"
    FAILED = "failed"


@dataclass
class PipelineReport:
    """Everything one build produced, success or failure."""

    state: PipelineState = PipelineState.IDLE
    history: list[PipelineState] = field(default_factory=lambda: [PipelineState.IDLE])
    outcome: str = ""              # "built" | "fresh" | "planned" | "failed"
    project_root: Path | None = None
    output_dir: Path | None = None
    watch_list: WatchList = field(default_factory=WatchList)
    directives: list[str] = field(default_factory=list)
    freshness: Freshness | None = None
    generation: GenerationResult | None = None
    formatting: FormatResult | None = None
    changed: bool = False
    error: CodegenError | None = None

    def advance(self, state: PipelineState) -> None:
        logger.debug("pipeline: %s → %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)

    @property
    def ok(self) -> bool:
        return self.state is PipelineState.REGISTERED

    def to_dict(self) -> dict:
        result: dict = {
            "state": self.state.value,
            "outcome": self.outcome,
            "history": [s.value for s in self.history],
            "output_dir": str(self.output_dir) if self.output_dir else None,
            "changed": self.changed,
            "watch_list": self.watch_list.display(self.project_root),
        }
        if self.freshness is not None:
            result["freshness"] = self.freshness.to_dict()
        if self.generation is not None:
            result["generation"] = self.generation.to_dict()
        if self.formatting is not None:
            result["formatting"] = self.formatting.to_dict()
        if self.error is not None:
            result["error"] = self.error.to_dict()
        return result


class CodegenPipeline:
    """Runs the codegen steps for one configuration.

    Args:
        config: Validated codegen configuration.
        project_root: Directory the config's relative paths resolve against.
        registry: Adapters for the generator ("protoc") and formatter ("formatter").
        builtin_includes: Generator-bundled include dirs for well-known types.
    """

    def __init__(
        self,
        config: CodegenConfig,
        project_root: Path,
        registry: AdapterRegistry,
        builtin_includes: Sequence[Path] = (),
    ):
        self.config = config
        self.project_root = project_root.resolve()
        self.registry = registry
        self.builtin_includes = list(builtin_includes) if config.generator.well_known_types else []
        self.report = PipelineReport()

    def run(self, force: bool = False, dry_run: bool = False) -> PipelineReport:
        """Execute one build.

        Args:
            force: Regenerate even when the last manifest is still current.
            dry_run: Resolve and validate tool invocations, write nothing.

        Raises:
            CodegenError: Any fatal error; ``self.report`` records where it failed.
        """
        self.report = PipelineReport(project_root=self.project_root)
        try:
            self._run(force=force, dry_run=dry_run)
        except CodegenError as e:
            self.report.error = e
            self.report.outcome = "failed"
            self.report.advance(PipelineState.FAILED)
            logger.error("Codegen failed during %s: %s", e.stage, e)
            raise
        return self.report

    def _run(self, force: bool, dry_run: bool) -> None:
        config, root, report = self.config, self.project_root, self.report
        output_dir = config.output_path(root)
        manifest_path = config.manifest_path(root)
        report.output_dir = output_dir

        report.advance(PipelineState.RESOLVING)
        resolved = resolve_inputs(
            config.schema_paths(root),
            config.include_dirs(root),
            builtin_includes=self.builtin_includes,
        )
        report.watch_list = build_watch_list(resolved)
        report.directives = render_directives(
            report.watch_list, prefix=config.watch.directive_prefix, root=root
        )

        if not dry_run:
            report.freshness = check_freshness(
                load_manifest(manifest_path),
                report.watch_list,
                root,
                output_dir,
                config.digest(),
            )
            if report.freshness.fresh and not force:
                logger.info("Generated bindings are up to date (%s)", output_dir)
                report.outcome = "fresh"
                report.advance(PipelineState.REGISTERED)
                return

        before = tree_digests(output_dir)

        report.advance(PipelineState.GENERATING)
        report.generation = generate_bindings(
            resolved,
            output_dir,
            self.registry,
            settings=config.generator,
            postprocess=config.postprocess,
            project_root=root,
            dry_run=dry_run,
            keep_previous=not dry_run,
        )

        report.advance(PipelineState.FORMATTING)
        if dry_run:
            report.formatting = normalize_sources(
                output_dir, root, self.registry, settings=config.formatter, dry_run=True
            )
            report.outcome = "planned"
            report.advance(PipelineState.REGISTERED)
            return

        # the previous output stays aside until the build is registered
        previous = report.generation.previous
        try:
            report.formatting = normalize_sources(
                output_dir, root, self.registry, settings=config.formatter
            )
            report.changed = tree_digests(output_dir) != before
            register_watch_list(
                report.watch_list,
                manifest_path,
                project_root=root,
                output_dir=output_dir,
                config_digest=config.digest(),
                formatted=report.formatting.status != "advisory",
            )
        except CodegenError:
            restore_previous(output_dir, previous)
            raise
        discard_previous(previous)

        report.outcome = "built"
        report.advance(PipelineState.REGISTERED)
        logger.info(
            "Codegen complete: %d file(s), %d watched input(s)%s",
            len(report.generation.files),
            len(report.watch_list),
            "" if report.changed else " (no changes)",
        )
