"""
Post-generation normalizer — run the formatter over freshly generated code.

Formatting makes repeated generations converge to one byte-identical
tree. A formatter failure is fatal unless ``formatter.strict`` is off;
even then it is only tolerated when every generated source still parses.
"""

from __future__ import annotations

import ast
import logging
from dataclasses import dataclass
from pathlib import Path

from protobuild.adapters.registry import AdapterRegistry
from protobuild.core.errors import FormatterInvocationError
from protobuild.core.models.action import Action, Receipt
from protobuild.core.models.config import FormatterSettings

logger = logging.getLogger(__name__)

FORMATTER_ADAPTER = "formatter"


@dataclass
class FormatResult:
    """Outcome of the normalizer step."""

    status: str                    # "ok" | "skipped" | "advisory" | "planned"
    target: Path | None = None
    receipt: Receipt | None = None
    warning: str | None = None

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "target": str(self.target) if self.target else None,
            "warning": self.warning,
        }


def format_target(output_dir: Path, project_root: Path, settings: FormatterSettings) -> Path:
    return project_root if settings.scope == "project" else output_dir


def build_formatter_action(target: Path, settings: FormatterSettings) -> Action:
    return Action(
        id="format",
        adapter=FORMATTER_ADAPTER,
        name="normalize generated sources",
        argv=[str(target)],
        timeout=settings.timeout,
    )


def find_syntax_errors(root: Path) -> list[str]:
    """Generated Python sources under ``root`` that do not parse."""
    broken = []
    for source in sorted(root.rglob("*.py*")):
        if source.suffix not in (".py", ".pyi") or not source.is_file():
            continue
        try:
            ast.parse(source.read_text(encoding="utf-8"), filename=str(source))
        except (SyntaxError, ValueError, UnicodeDecodeError) as e:
            broken.append(f"{source.relative_to(root).as_posix()}: {e}")
    return broken


def normalize_sources(
    output_dir: Path,
    project_root: Path,
    registry: AdapterRegistry,
    settings: FormatterSettings | None = None,
    dry_run: bool = False,
) -> FormatResult:
    """Format the generated output (or the whole project).

    Raises:
        FormatterInvocationError: The formatter failed and either the policy
            is strict or the generated code does not parse.
    """
    settings = settings or FormatterSettings()

    if not settings.enabled:
        logger.info("Formatter disabled, leaving generated sources as emitted")
        return FormatResult(status="skipped")

    target = format_target(output_dir, project_root, settings)
    action = build_formatter_action(target, settings)
    receipt = registry.execute_action(action, project_root=str(project_root), dry_run=dry_run)

    if receipt.skipped:
        return FormatResult(status="planned", target=target, receipt=receipt)

    if receipt.ok:
        logger.info("Formatted %s", target)
        return FormatResult(status="ok", target=target, receipt=receipt)

    tool = " ".join(settings.command)
    message = f"Formatter '{tool}' failed on {target}: {receipt.error}"

    if settings.strict:
        raise FormatterInvocationError(message, path=target, tool=tool, detail=receipt.error or "")

    broken = find_syntax_errors(output_dir)
    if broken:
        raise FormatterInvocationError(
            f"{message}; generated sources do not parse: {'; '.join(broken)}",
            path=target,
            tool=tool,
            detail=receipt.error or "",
        )

    logger.warning("%s — continuing with unformatted sources", message)
    return FormatResult(status="advisory", target=target, receipt=receipt, warning=message)
