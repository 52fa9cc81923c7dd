"""
Schema compiler invocation — turn the resolved Schema Set into bindings.

The generator writes into a staging directory next to the output
directory. Only when it succeeds (and post-processing succeeds) is the
staging directory swapped in, replacing the previous output wholesale.
Any failure leaves the previous output untouched.

Flow:
    stage dir → generator action → post-process → swap into output dir
"""

from __future__ import annotations

import logging
import os
import shutil
import stat
import tempfile
import uuid
from dataclasses import dataclass, field
from pathlib import Path

from protobuild.adapters.registry import AdapterRegistry
from protobuild.core.errors import GeneratorInvocationError, OutputWriteError
from protobuild.core.models.action import Action, Receipt
from protobuild.core.models.config import GeneratorSettings, PostprocessSettings
from protobuild.core.services.postprocess import make_imports_relative, write_package_inits
from protobuild.core.services.schema_resolver import ResolvedInputs

logger = logging.getLogger(__name__)

GENERATOR_ADAPTER = "protoc"


@dataclass
class GenerationResult:
    """Outcome of one generator run."""

    output_dir: Path
    receipt: Receipt
    files: list[str] = field(default_factory=list)   # relative to output_dir, sorted
    patched: list[str] = field(default_factory=list)
    previous: Path | None = None                      # old output, when kept aside

    def to_dict(self) -> dict:
        return {
            "output_dir": str(self.output_dir),
            "files": self.files,
            "patched": self.patched,
            "command": self.receipt.command,
            "duration_ms": self.receipt.duration_ms,
        }


def build_generator_action(
    resolved: ResolvedInputs,
    out_dir: Path,
    settings: GeneratorSettings,
) -> Action:
    """Build the generator invocation for a resolved Schema Set."""
    argv = [f"-I{directory}" for directory in resolved.include_paths]
    argv.append(f"--python_out={out_dir}")
    if settings.pyi:
        argv.append(f"--pyi_out={out_dir}")
    if settings.grpc:
        argv.append(f"--grpc_python_out={out_dir}")
    argv.extend(str(schema) for schema in resolved.schemas)

    return Action(
        id="generate",
        adapter=GENERATOR_ADAPTER,
        name="generate bindings",
        argv=argv,
        timeout=settings.timeout,
    )


def list_files(root: Path) -> list[str]:
    """All files under ``root``, relative and sorted."""
    return sorted(p.relative_to(root).as_posix() for p in root.rglob("*") if p.is_file())


def check_output_location(
    output_dir: Path,
    resolved: ResolvedInputs,
    project_root: Path | None = None,
) -> None:
    """Refuse an output directory whose replacement would delete build inputs.

    The output directory is replaced wholesale, so it must not be the
    project root, and must not be or contain any schema, imported file,
    or include path.

    Raises:
        OutputWriteError: ``output_dir`` overlaps the inputs.
    """
    target = output_dir.resolve()
    if project_root is not None and target == project_root.resolve():
        raise OutputWriteError(
            f"Output directory {output_dir} is the project root; it is replaced on every build",
            path=output_dir,
        )
    for path in (*resolved.include_paths, *resolved.files):
        path = path.resolve()
        if path == target or target in path.parents:
            raise OutputWriteError(
                f"Output directory {output_dir} would replace build input {path}",
                path=output_dir,
            )


def _output_mode(output_dir: Path) -> int:
    """Permissions for the new output dir: the old dir's, else 0777 minus umask."""
    if output_dir.is_dir():
        return stat.S_IMODE(output_dir.stat().st_mode)
    umask = os.umask(0)
    os.umask(umask)
    return 0o777 & ~umask


def _make_staging_dir(output_dir: Path) -> Path:
    if output_dir.exists() and not output_dir.is_dir():
        raise OutputWriteError(
            f"Output path exists and is not a directory: {output_dir}", path=output_dir
        )
    try:
        output_dir.parent.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(dir=output_dir.parent, prefix=f".{output_dir.name}.staging-"))
        # mkdtemp creates 0700; the rename would carry that over to the output
        staging.chmod(_output_mode(output_dir))
        return staging
    except OSError as e:
        raise OutputWriteError(
            f"Cannot create output location {output_dir}: {e}", path=output_dir
        ) from e


def replace_directory(staging: Path, output_dir: Path, keep_previous: bool = False) -> Path | None:
    """Swap ``staging`` in as ``output_dir``, restoring the old tree on failure.

    Returns:
        With ``keep_previous``, the renamed-aside old output (None when
        there was none); the caller then owns it. Otherwise it is deleted.
    """
    backup: Path | None = None
    try:
        if output_dir.exists():
            backup = output_dir.with_name(f".{output_dir.name}.previous-{uuid.uuid4().hex[:8]}")
            output_dir.rename(backup)
        staging.rename(output_dir)
    except OSError as e:
        if backup is not None and backup.exists() and not output_dir.exists():
            backup.rename(output_dir)
        raise OutputWriteError(f"Cannot replace output directory {output_dir}: {e}", path=output_dir) from e

    if keep_previous:
        return backup
    discard_previous(backup)
    return None


def restore_previous(output_dir: Path, previous: Path | None) -> None:
    """Undo an install: put the old output back, or remove the new one if there was none.

    Raises:
        OutputWriteError: The old output cannot be put back.
    """
    try:
        if output_dir.exists():
            shutil.rmtree(output_dir)
        if previous is not None:
            previous.rename(output_dir)
    except OSError as e:
        raise OutputWriteError(
            f"Cannot restore previous output {output_dir}: {e}", path=output_dir
        ) from e
    logger.info("Restored previous output in %s", output_dir)


def discard_previous(previous: Path | None) -> None:
    if previous is not None:
        shutil.rmtree(previous, ignore_errors=True)


def generate_bindings(
    resolved: ResolvedInputs,
    output_dir: Path,
    registry: AdapterRegistry,
    settings: GeneratorSettings | None = None,
    postprocess: PostprocessSettings | None = None,
    project_root: Path | None = None,
    dry_run: bool = False,
    keep_previous: bool = False,
) -> GenerationResult:
    """Run the generator and install its output into ``output_dir``.

    Args:
        resolved: Schema Set and include paths from resolve_inputs().
        output_dir: Directory that receives the generated tree.
        registry: Adapter registry holding the generator adapter.
        settings: Generator flags.
        postprocess: Rewrites applied before installing.
        project_root: Working directory for the generator.
        dry_run: Validate the invocation without running it.
        keep_previous: Keep the old output aside (``result.previous``) so a
            later step can restore it with restore_previous().

    Returns:
        GenerationResult with the installed file list.

    Raises:
        GeneratorInvocationError: Launch failure, non-zero exit, or no output.
        OutputWriteError: The output directory overlaps the inputs or
            cannot be written.
    """
    settings = settings or GeneratorSettings()
    postprocess = postprocess or PostprocessSettings()
    cwd = str(project_root or output_dir.parent)

    check_output_location(output_dir, resolved, project_root)

    if dry_run:
        action = build_generator_action(resolved, output_dir, settings)
        receipt = registry.execute_action(action, project_root=cwd, dry_run=True)
        _raise_on_failure(receipt)
        return GenerationResult(output_dir=output_dir, receipt=receipt)

    staging = _make_staging_dir(output_dir)
    try:
        action = build_generator_action(resolved, staging, settings)
        logger.info("Generating bindings for %d schema(s)", len(resolved.schemas))
        receipt = registry.execute_action(action, project_root=cwd)
        _raise_on_failure(receipt)

        if not list_files(staging):
            raise GeneratorInvocationError(
                f"Generator produced no files for {', '.join(s.name for s in resolved.schemas)}",
                tool=GENERATOR_ADAPTER,
            )

        patched: list[str] = []
        try:
            if postprocess.relative_imports:
                patched = make_imports_relative(staging)
            if postprocess.package_init:
                write_package_inits(staging)
        except OSError as e:
            raise OutputWriteError(f"Cannot post-process generated sources: {e}", path=staging) from e

        previous = replace_directory(staging, output_dir, keep_previous=keep_previous)
    finally:
        if staging.exists():
            shutil.rmtree(staging, ignore_errors=True)

    files = list_files(output_dir)
    logger.info("Generated %d file(s) into %s", len(files), output_dir)
    return GenerationResult(
        output_dir=output_dir, receipt=receipt, files=files, patched=patched, previous=previous
    )


def _raise_on_failure(receipt: Receipt) -> None:
    if not receipt.failed:
        return
    if receipt.metadata.get("launch_error"):
        message = f"Generator could not be launched: {receipt.error}"
    elif receipt.return_code is not None:
        message = f"Generator exited with code {receipt.return_code}: {receipt.error}"
    else:
        message = f"Generator failed: {receipt.error}"
    raise GeneratorInvocationError(message, tool=receipt.adapter, detail=receipt.error or "")
