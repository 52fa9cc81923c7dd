"""
Config check use case — validate codegen.yml and report issues.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from protobuild.adapters.registry import AdapterRegistry
from protobuild.core.config.loader import ConfigError, find_config_file, load_config
from protobuild.core.models.config import CodegenConfig
from protobuild.core.services.formatting import FORMATTER_ADAPTER
from protobuild.core.services.generation import GENERATOR_ADAPTER
from protobuild.core.use_cases.build import default_registry


@dataclass
class ConfigCheckResult:
    """Result of configuration validation."""

    valid: bool = False
    config: CodegenConfig | None = None
    config_path: Path | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "config_path": str(self.config_path) if self.config_path else None,
            "errors": self.errors,
            "warnings": self.warnings,
            "name": self.config.name if self.config else None,
            "schema_count": len(self.config.schemas) if self.config else 0,
            "include_path_count": len(self.config.include_paths) if self.config else 0,
        }


def _is_within(path: Path, parent: Path) -> bool:
    try:
        path.relative_to(parent)
        return True
    except ValueError:
        return False


def check_config(
    config_path: Path | None = None,
    check_tools: bool = True,
    registry: AdapterRegistry | None = None,
) -> ConfigCheckResult:
    """Validate codegen configuration and report issues.

    Errors are problems a build would fail on; warnings are likely mistakes
    that a build tolerates. Tool availability is read from ``registry``
    (default: the real generator and formatter for the config).
    """
    result = ConfigCheckResult()

    if config_path is None:
        config_path = find_config_file()
    if config_path is None:
        result.errors.append("No codegen.yml found.")
        return result
    result.config_path = config_path

    try:
        config = load_config(config_path)
    except ConfigError as e:
        result.errors.append(str(e))
        return result
    result.config = config

    root = config_path.parent.resolve()
    includes = [p.resolve() for p in config.include_dirs(root)]
    output_dir = config.output_path(root).resolve()

    for schema in config.schemas:
        path = (root / schema).resolve()
        if not path.is_file():
            result.errors.append(f"Schema file not found: {schema}")
        elif includes and not any(_is_within(path, inc) for inc in includes):
            result.errors.append(f"Schema {schema} is not under any include path")

    for include in config.include_paths:
        if not (root / include).is_dir():
            result.warnings.append(f"Include path does not exist: {include}")

    if output_dir == root:
        result.errors.append("output_dir must not be the project root (it is replaced on every build)")
    else:
        inputs = includes + [(root / s).resolve() for s in config.schemas]
        for path in inputs:
            if _is_within(path, output_dir):
                shown = path.relative_to(root).as_posix() if _is_within(path, root) else str(path)
                result.errors.append(
                    f"output_dir {config.output_dir} would replace build input {shown}"
                )
        if any(_is_within(output_dir, inc) for inc in includes):
            result.warnings.append(f"output_dir {config.output_dir} overlaps an include path")

    if config.formatter.enabled and not config.formatter.strict:
        result.warnings.append(
            "formatter.strict is off: a formatter failure will leave unformatted sources"
        )

    if check_tools:
        _check_tools(config, registry or default_registry(config), result)

    result.valid = len(result.errors) == 0
    return result


def _check_tools(config: CodegenConfig, registry: AdapterRegistry, result: ConfigCheckResult) -> None:
    status = registry.adapter_status()
    wanted = {GENERATOR_ADAPTER: "Generator"}
    if config.formatter.enabled:
        wanted[FORMATTER_ADAPTER] = "Formatter"

    for name, label in wanted.items():
        entry = status.get(name)
        if entry is None:
            result.warnings.append(f"{label} adapter not registered: {name}")
        elif not entry["available"]:
            result.warnings.append(f"{label} not available: {entry['program']}")
