"""
Generated-tree rewrites applied before the tree replaces the output dir.

protoc emits ``import foo_pb2 as foo__pb2`` for sibling modules, which
only works when the output directory itself is on sys.path. Rewriting
those lines to ``from . import foo_pb2 as foo__pb2`` makes the output a
regular package. Imports of modules that are not siblings (for example
``google.protobuf``) are left alone.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

logger = logging.getLogger(__name__)

_BARE_PB2_IMPORT = re.compile(r"^import (?P<module>\w+_pb2)(?P<alias> as \w+)?[ \t]*$", re.MULTILINE)
_SOURCE_SUFFIXES = (".py", ".pyi")


def _generated_dirs(root: Path) -> list[Path]:
    return [root, *sorted(p for p in root.rglob("*") if p.is_dir())]


def write_package_inits(root: Path) -> list[str]:
    """Create an empty ``__init__.py`` in every directory of the tree.

    Returns:
        Created files, relative to ``root``.
    """
    created = []
    for directory in _generated_dirs(root):
        init = directory / "__init__.py"
        if not init.exists():
            init.write_text("", encoding="utf-8")
            created.append(init.relative_to(root).as_posix())
    return created


def make_imports_relative(root: Path) -> list[str]:
    """Rewrite bare sibling ``*_pb2`` imports into package-relative ones.

    Returns:
        Patched files, relative to ``root``.
    """
    patched = []

    for directory in _generated_dirs(root):
        siblings = {p.stem for p in directory.iterdir() if p.suffix in _SOURCE_SUFFIXES}

        def relative(match: re.Match[str]) -> str:
            module = match.group("module")
            if module not in siblings:
                return match.group(0)
            return f"from . import {module}{match.group('alias') or ''}"

        for source in sorted(directory.iterdir()):
            if source.suffix not in _SOURCE_SUFFIXES or not source.is_file():
                continue
            content = source.read_text(encoding="utf-8")
            updated = _BARE_PB2_IMPORT.sub(relative, content)
            if updated != content:
                source.write_text(updated, encoding="utf-8")
                patched.append(source.relative_to(root).as_posix())

    logger.debug("Rewrote sibling imports in %d file(s)", len(patched))
    return patched
