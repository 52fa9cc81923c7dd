"""
protobuild — CLI entrypoint.

Usage:
    protobuild --help
    protobuild build
    protobuild build --emit-directives
    protobuild status
    protobuild watch-list
    protobuild config check
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from protobuild import __version__
from protobuild.core.observability.logging_config import configure_cli_logging


@click.group()
@click.version_option(version=__version__, prog_name="protobuild")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to codegen.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """protobuild — generate protobuf/gRPC bindings as a build step."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    configure_cli_logging(debug=debug, verbose=verbose, quiet=quiet)


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--force", is_flag=True, help="Regenerate even if nothing changed.")
@click.option("--dry-run", is_flag=True, help="Resolve inputs and validate tools only.")
@click.option(
    "--emit-directives",
    is_flag=True,
    help="Print one rerun-if-changed directive per watched file on stdout.",
)
@click.pass_context
def build(ctx: click.Context, as_json: bool, force: bool, dry_run: bool, emit_directives: bool) -> None:
    """Generate bindings, format them, and register the watch list."""
    from protobuild.core.use_cases.build import run_build

    result = run_build(config_path=ctx.obj.get("config_path"), force=force, dry_run=dry_run)
    report = result.report

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.ok else 1)

    if result.error or report is None:
        stage = f" [{report.error.stage}]" if report and report.error else ""
        click.secho(
            f"❌ {result.error_kind or 'BuildError'}{stage}: {result.error or 'build produced no report'}",
            fg="red",
            err=True,
        )
        sys.exit(1)

    if emit_directives:
        for line in report.directives:
            click.echo(line)
        return

    quiet = ctx.obj.get("quiet", False)
    if report.outcome == "fresh":
        if not quiet:
            click.secho(f"✓ Up to date → {report.output_dir}", fg="green")
        return

    if report.outcome == "planned":
        click.secho("\n📝 [dry-run] codegen plan", fg="cyan", bold=True)
        if report.generation:
            click.echo(f"   generate: {' '.join(report.generation.receipt.command)}")
        if report.formatting and report.formatting.target:
            click.echo(f"   format:   {report.formatting.target}")
        click.echo(f"   watch:    {len(report.watch_list)} file(s)")
        for path in report.watch_list.display(result.project_root):
            click.echo(f"     • {path}")
        click.echo()
        return

    files = report.generation.files if report.generation else []
    if not quiet:
        click.secho(f"\n⚡ Generated {len(files)} file(s) → {report.output_dir}", fg="cyan", bold=True)
        if ctx.obj.get("verbose"):
            for name in files:
                click.echo(f"     • {name}")
        if report.formatting:
            fmt = report.formatting
            color = {"ok": "green", "skipped": "white", "advisory": "yellow"}.get(fmt.status, "white")
            click.secho(f"   Formatting: {fmt.status}", fg=color)
            if fmt.warning:
                click.echo(f"     │ {fmt.warning}")
        click.echo(f"   Watched inputs: {len(report.watch_list)}")
        if not report.changed:
            click.echo("   No changes in generated output")
        click.echo()


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, as_json: bool) -> None:
    """Show whether generated bindings are current. Exits 1 when stale."""
    from protobuild.core.use_cases.status import get_status

    result = get_status(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        fresh = result.freshness is not None and result.freshness.fresh
        sys.exit(0 if fresh else 1)

    if result.error or result.config is None or result.freshness is None:
        click.secho(f"❌ {result.error or 'status unavailable'}", fg="red", err=True)
        sys.exit(1)

    click.secho(f"\n📋 {result.config.name}", fg="cyan", bold=True)
    click.echo(f"   Output: {result.config.output_dir}")
    click.echo(f"   Watched inputs: {len(result.watch_list or ())}")

    if result.freshness.fresh:
        click.secho("   ✓ Up to date", fg="green")
        click.echo()
        return

    click.secho("   ✗ Stale", fg="yellow")
    for reason in result.freshness.reasons:
        click.echo(f"     • {reason}")
    click.echo()
    sys.exit(1)


@cli.command("watch-list")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["directives", "plain", "json"]),
    default="plain",
    help="Output format.",
)
@click.pass_context
def watch_list(ctx: click.Context, output_format: str) -> None:
    """Print every file whose change must trigger regeneration."""
    from protobuild.core.use_cases.status import get_status

    result = get_status(config_path=ctx.obj.get("config_path"), check=False)

    if result.error or result.watch_list is None:
        click.secho(f"❌ {result.error or 'watch list unavailable'}", fg="red", err=True)
        sys.exit(1)

    if output_format == "json":
        click.echo(json.dumps(result.watch_list.display(result.project_root), indent=2))
    elif output_format == "directives":
        for line in result.directives or []:
            click.echo(line)
    else:
        for path in result.watch_list.display(result.project_root):
            click.echo(path)


@cli.group()
def config() -> None:
    """Codegen configuration commands."""


@config.command("check")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_check(ctx: click.Context, as_json: bool) -> None:
    """Validate codegen.yml configuration."""
    from protobuild.core.use_cases.config_check import check_config

    result = check_config(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.valid else 1)

    if result.valid and result.config is not None:
        click.secho("✅ Configuration is valid", fg="green", bold=True)
        click.echo(f"   Name: {result.config.name}")
        click.echo(f"   Schemas: {len(result.config.schemas)}")
        click.echo(f"   Include paths: {len(result.config.include_paths)}")
        click.echo(f"   Output: {result.config.output_dir}")
    else:
        click.secho("❌ Configuration errors:", fg="red", bold=True)
        for err in result.errors:
            click.echo(f"   • {err}")

    if result.warnings:
        click.echo()
        click.secho("⚠️  Warnings:", fg="yellow")
        for warn in result.warnings:
            click.echo(f"   • {warn}")

    if not result.valid:
        click.echo()
        sys.exit(1)

    click.echo()


if __name__ == "__main__":
    cli()
