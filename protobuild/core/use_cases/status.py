"""
Status use case — is the generated tree current, and what is watched?

Resolves inputs and compares them with the last manifest without
invoking any external tool.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from protobuild.adapters.tools.protoc import bundled_include_dirs
from protobuild.core.config.loader import ConfigError
from protobuild.core.errors import CodegenError
from protobuild.core.models.config import CodegenConfig
from protobuild.core.persistence.manifest_file import load_manifest
from protobuild.core.services.schema_resolver import resolve_inputs
from protobuild.core.services.watch import (
    Freshness,
    WatchList,
    build_watch_list,
    check_freshness,
    render_directives,
)
from protobuild.core.use_cases.build import load


@dataclass
class StatusResult:
    """Watch list plus freshness of the generated tree."""

    config: CodegenConfig | None = None
    project_root: Path | None = None
    watch_list: WatchList | None = None
    directives: list[str] | None = None
    freshness: Freshness | None = None
    manifest_path: Path | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        result: dict = {}
        if self.error or self.config is None or self.watch_list is None:
            result["error"] = self.error or "status unavailable"
            return result

        result["name"] = self.config.name
        result["output_dir"] = self.config.output_dir
        result["manifest"] = str(self.manifest_path) if self.manifest_path else None
        result["watch_list"] = self.watch_list.display(self.project_root)
        if self.freshness is not None:
            result["freshness"] = self.freshness.to_dict()
        return result


def get_status(
    config_path: Path | None = None,
    check: bool = True,
    builtin_includes: Sequence[Path] | None = None,
) -> StatusResult:
    """Resolve the watch list and, with ``check``, compare against the manifest."""
    result = StatusResult()

    try:
        config, _, root = load(config_path)
    except ConfigError as e:
        result.error = str(e)
        return result

    result.config, result.project_root = config, root
    result.manifest_path = config.manifest_path(root)

    if builtin_includes is None:
        builtin_includes = bundled_include_dirs(config.generator.tool, config.generator.executable)
    if not config.generator.well_known_types:
        builtin_includes = ()

    try:
        resolved = resolve_inputs(config.schema_paths(root), config.include_dirs(root), builtin_includes)
    except CodegenError as e:
        result.error = str(e)
        return result

    result.watch_list = build_watch_list(resolved)
    result.directives = render_directives(result.watch_list, config.watch.directive_prefix, root)

    if check:
        result.freshness = check_freshness(
            load_manifest(result.manifest_path),
            result.watch_list,
            root,
            config.output_path(root),
            config.digest(),
        )

    return result
