"""
Manifest persistence — atomic read/write for the WatchManifest.

Writes go to a temp file in the same directory and are then renamed over
the target, so a crash mid-write never leaves a half-written manifest
that a later build would trust.
"""

from __future__ import annotations

import json
import logging
import tempfile
from pathlib import Path

from pydantic import ValidationError

from protobuild.core.models.manifest import MANIFEST_VERSION, WatchManifest

logger = logging.getLogger(__name__)


def load_manifest(path: Path) -> WatchManifest | None:
    """Load the manifest of the last successful build.

    Returns:
        The manifest, or None when it is missing, corrupt, or written by an
        incompatible version. None always means "rebuild".
    """
    if not path.is_file():
        logger.info("No manifest at %s", path)
        return None

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        manifest = WatchManifest.model_validate(data)
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        logger.warning("Unreadable manifest %s: %s — treating as stale", path, e)
        return None

    if manifest.version != MANIFEST_VERSION:
        logger.info("Manifest %s has version %s, expected %s", path, manifest.version, MANIFEST_VERSION)
        return None

    return manifest


def save_manifest(manifest: WatchManifest, path: Path) -> None:
    """Save the manifest (atomic write).

    Raises:
        OSError: If the directory or file cannot be written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    content = json.dumps(manifest.model_dump(mode="json"), indent=2, sort_keys=True) + "\n"

    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=".manifest_", suffix=".tmp")
    tmp = Path(tmp_path)
    try:
        with open(fd, "w", encoding="utf-8") as fh:
            fh.write(content)
        tmp.replace(path)
        logger.debug("Manifest saved to %s", path)
    except Exception:
        tmp.unlink(missing_ok=True)
        raise
