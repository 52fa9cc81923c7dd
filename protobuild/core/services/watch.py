"""
Change-detection registration — which files must trigger a rebuild.

The watch list is a plain value returned by the pipeline. It is
registered two ways:

    directives   one ``rerun-if-changed=<path>`` line per file, for build
                 systems that read instructions from the step's stdout
    manifest     sha256 of every watched input and every generated file,
                 compared on the next build to decide whether to re-run
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator

from protobuild.core.errors import WatchRegistrationError
from protobuild.core.models.manifest import WatchManifest
from protobuild.core.persistence.manifest_file import save_manifest
from protobuild.core.services.schema_resolver import ResolvedInputs

logger = logging.getLogger(__name__)

_CHUNK = 1 << 16


@dataclass(frozen=True)
class WatchList:
    """Ordered, de-duplicated absolute paths whose change forces a rebuild."""

    paths: tuple[Path, ...] = ()

    def __iter__(self) -> Iterator[Path]:
        return iter(self.paths)

    def __len__(self) -> int:
        return len(self.paths)

    def __contains__(self, item: object) -> bool:
        return Path(str(item)).resolve() in self.paths if isinstance(item, (str, Path)) else False

    def display(self, root: Path | None = None) -> list[str]:
        """Paths relative to ``root`` where possible, absolute otherwise."""
        return [_display_path(p, root) for p in self.paths]


@dataclass
class Freshness:
    """Whether the last recorded build still matches the inputs."""

    fresh: bool = False
    reasons: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"fresh": self.fresh, "reasons": self.reasons}


def _display_path(path: Path, root: Path | None) -> str:
    if root is not None:
        try:
            return path.relative_to(root.resolve()).as_posix()
        except ValueError:
            pass
    return str(path)


def build_watch_list(resolved: ResolvedInputs) -> WatchList:
    """Every schema and every transitively imported file."""
    seen: dict[Path, None] = {}
    for path in resolved.files:
        seen.setdefault(path.resolve(), None)
    return WatchList(paths=tuple(seen))


def render_directives(
    watch_list: WatchList,
    prefix: str = "rerun-if-changed=",
    root: Path | None = None,
) -> list[str]:
    """One build-system directive per watched file."""
    return [f"{prefix}{path}" for path in watch_list.display(root)]


def file_digest(path: Path) -> str:
    h = hashlib.sha256()
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(_CHUNK), b""):
            h.update(chunk)
    return h.hexdigest()


def input_digests(watch_list: WatchList, root: Path) -> dict[str, str]:
    return {_display_path(p, root): file_digest(p) for p in watch_list}


def tree_digests(root: Path) -> dict[str, str]:
    """sha256 of every file under ``root`` keyed by relative path.

    Bytecode caches are skipped; importing the bindings creates them.
    """
    if not root.is_dir():
        return {}
    return {
        p.relative_to(root).as_posix(): file_digest(p)
        for p in sorted(root.rglob("*"))
        if p.is_file() and "__pycache__" not in p.relative_to(root).parts
    }


def register_watch_list(
    watch_list: WatchList,
    manifest_path: Path,
    project_root: Path,
    output_dir: Path,
    config_digest: str,
    formatted: bool = True,
) -> WatchManifest:
    """Record the watch list with hashes for the next build.

    Raises:
        WatchRegistrationError: If hashing or writing the manifest fails.
    """
    try:
        manifest = WatchManifest(
            config_digest=config_digest,
            formatted=formatted,
            inputs=input_digests(watch_list, project_root),
            outputs=tree_digests(output_dir),
        )
        save_manifest(manifest, manifest_path)
    except OSError as e:
        raise WatchRegistrationError(
            f"Cannot write watch manifest {manifest_path}: {e}", path=manifest_path
        ) from e

    logger.info("Registered %d watched file(s) in %s", len(watch_list), manifest_path)
    return manifest


def check_freshness(
    manifest: WatchManifest | None,
    watch_list: WatchList,
    project_root: Path,
    output_dir: Path,
    config_digest: str,
) -> Freshness:
    """Compare the current inputs and outputs against the last manifest."""
    if manifest is None:
        return Freshness(fresh=False, reasons=["no previous build recorded"])

    reasons: list[str] = []

    if manifest.config_digest != config_digest:
        reasons.append("configuration changed")
    if not manifest.formatted:
        reasons.append("previous build was not formatted")

    current = input_digests(watch_list, project_root)
    for name, digest in current.items():
        recorded = manifest.inputs.get(name)
        if recorded is None:
            reasons.append(f"new input: {name}")
        elif recorded != digest:
            reasons.append(f"changed: {name}")
    for name in manifest.inputs:
        if name not in current:
            reasons.append(f"no longer an input: {name}")

    if tree_digests(output_dir) != manifest.outputs:
        reasons.append(f"output differs from last build: {_display_path(output_dir.resolve(), project_root)}")

    return Freshness(fresh=not reasons, reasons=reasons)
