"""
WatchManifest — the persisted record of the last successful build.

Serialized to .state/codegen-manifest.json. It is the only state that
survives between builds besides the generated tree itself, and it is
only ever used to decide whether the next build may be skipped.
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, Field

MANIFEST_VERSION = 1


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class WatchManifest(BaseModel):
    """Hashes of every watched input and every generated output."""

    version: int = MANIFEST_VERSION
    generated_at: str = Field(default_factory=_now_iso)
    config_digest: str = ""
    formatted: bool = True

    # watched path (relative to project root when inside it) → sha256
    inputs: dict[str, str] = Field(default_factory=dict)
    # generated file (relative to the output dir) → sha256
    outputs: dict[str, str] = Field(default_factory=dict)
