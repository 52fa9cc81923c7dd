"""
Schema input resolution — the Schema Set plus everything it imports.

Import statements are resolved the way protoc resolves them: each
include path is tried in order and the first hit wins. Resolution is
depth-first from each schema, in Schema Set order, so the resulting file
list is deterministic for a given tree.

Public API:
    parse_imports(text)                          → list of import names
    resolve_inputs(schemas, include_paths, ...)  → ResolvedInputs
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from protobuild.core.errors import ImportResolutionError, SchemaNotFound

logger = logging.getLogger(__name__)

# import "a.proto";  import public "b.proto";  import weak 'c.proto';
_IMPORT_RE = re.compile(
    r"""(?:^|(?<=;))\s*import\s+(?:(?:public|weak)\s+)?(["'])(?P<name>[^"']+)\1\s*;""",
    re.MULTILINE,
)


@dataclass
class ResolvedInputs:
    """Every file that participates in one generation run."""

    schemas: list[Path] = field(default_factory=list)
    imports: list[Path] = field(default_factory=list)
    include_paths: list[Path] = field(default_factory=list)
    # importing file → files it imports, in statement order
    edges: dict[Path, list[Path]] = field(default_factory=dict)

    @property
    def files(self) -> list[Path]:
        """Schemas first, then imports in discovery order."""
        return self.schemas + self.imports


def strip_comments(text: str) -> str:
    """Remove ``//`` and ``/* */`` comments, leaving string literals intact."""
    out: list[str] = []
    i, n = 0, len(text)
    quote: str | None = None

    while i < n:
        ch = text[i]
        if quote:
            out.append(ch)
            if ch == "\\" and i + 1 < n:
                out.append(text[i + 1])
                i += 2
                continue
            if ch == quote or ch == "\n":
                quote = None
            i += 1
        elif ch in "\"'":
            quote = ch
            out.append(ch)
            i += 1
        elif text.startswith("//", i):
            end = text.find("\n", i)
            i = n if end == -1 else end
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            # keep line structure so statement boundaries survive
            chunk = text[i:n] if end == -1 else text[i:end + 2]
            out.append("\n" * chunk.count("\n") or " ")
            i = n if end == -1 else end + 2
        else:
            out.append(ch)
            i += 1

    return "".join(out)


def parse_imports(text: str) -> list[str]:
    """Return the import names of a schema source, in statement order."""
    return [m.group("name") for m in _IMPORT_RE.finditer(strip_comments(text))]


def _read_schema(path: Path, importer: Path | None = None) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        if importer is None:
            raise SchemaNotFound(f"Cannot read schema {path}: {e}", path=path) from e
        raise ImportResolutionError(
            f"Cannot read {path} (imported by {importer}): {e}",
            import_name=path.name,
            importer=importer,
        ) from e


def _locate(name: str, search: Sequence[Path]) -> Path | None:
    for directory in search:
        candidate = directory / name
        if candidate.is_file():
            return candidate.resolve()
    return None


def resolve_inputs(
    schemas: Sequence[Path],
    include_paths: Sequence[Path] = (),
    builtin_includes: Sequence[Path] = (),
) -> ResolvedInputs:
    """Check the Schema Set and collect its transitive imports.

    Args:
        schemas: Schema files, in the order they are passed to the generator.
        include_paths: Directories searched for imports, in order. When
            empty, the parent directory of each schema is used.
        builtin_includes: The generator's own include directories, searched
            after the project's.

    Returns:
        ResolvedInputs with absolute paths.

    Raises:
        SchemaNotFound: A schema is missing or unreadable.
        ImportResolutionError: An import is not under any include path.
    """
    resolved = ResolvedInputs()

    for schema in schemas:
        path = Path(schema).resolve()
        if not path.is_file():
            raise SchemaNotFound(f"Schema file not found: {schema}", path=schema)
        if path not in resolved.schemas:
            resolved.schemas.append(path)

    if include_paths:
        project_dirs = [Path(p).resolve() for p in include_paths]
    else:
        project_dirs = [s.parent for s in resolved.schemas]

    for directory in [*project_dirs, *[Path(p).resolve() for p in builtin_includes]]:
        if directory in resolved.include_paths:
            continue
        if not directory.is_dir():
            logger.warning("Include path is not a directory: %s", directory)
            continue
        resolved.include_paths.append(directory)

    schema_set = set(resolved.schemas)
    visited: set[Path] = set()

    def visit(path: Path, importer: Path | None) -> None:
        if path in visited:
            return
        visited.add(path)
        if path not in schema_set:
            resolved.imports.append(path)

        text = _read_schema(path, importer)
        targets = resolved.edges.setdefault(path, [])
        for name in parse_imports(text):
            found = _locate(name, resolved.include_paths)
            if found is None:
                searched = ", ".join(str(d) for d in resolved.include_paths) or "(none)"
                raise ImportResolutionError(
                    f"Cannot resolve import '{name}' in {path}; searched: {searched}",
                    import_name=name,
                    importer=path,
                )
            targets.append(found)
            visit(found, path)

    for schema in resolved.schemas:
        visit(schema, None)

    logger.debug(
        "Resolved %d schema(s), %d import(s)", len(resolved.schemas), len(resolved.imports)
    )
    return resolved
