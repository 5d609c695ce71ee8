"""STIG Audit (stig) - scan STIG benchmarks and check host compliance."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import click
import yaml


def _make_service(ctx: click.Context, cli_overrides: dict | None = None):
    from ..core.service import StigService

    return StigService(config_path=ctx.obj.get("config_path"), cli_overrides=cli_overrides or None)


def _directory_override(directory: str | None) -> dict:
    return {"stig": {"source_directory": directory}} if directory else {}


@click.group()
@click.pass_context
@click.option("--config", "config_path", type=click.Path(dir_okay=False), help="Config file path")
def stig_cli(ctx: click.Context, config_path: str | None) -> None:
    """STIG Audit - automated STIG compliance checking."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = Path(config_path) if config_path else None


@stig_cli.command()
@click.pass_context
@click.option("--directory", "-d", type=click.Path(file_okay=False), help="STIG source directory")
def scan(ctx: click.Context, directory: str | None) -> None:
    """Scan the source directory and list loaded benchmarks."""
    service = _make_service(ctx, _directory_override(directory))
    benchmarks = service.scan()

    if not benchmarks:
        click.echo("No STIG benchmarks found.")
        return
    for benchmark in benchmarks:
        click.echo(f"{benchmark.id}  {benchmark.title} (v{benchmark.version}, {benchmark.rule_count} rules)")


@stig_cli.command()
@click.pass_context
@click.option("--directory", "-d", type=click.Path(file_okay=False), help="STIG source directory")
@click.option("--benchmark", "-b", type=str, help="Only check this benchmark ID")
@click.option("--timeout", type=int, help="Per-check timeout in milliseconds")
@click.option("--max-workers", type=int, help="Checks to run concurrently (default: 1)")
@click.option("--executor", type=click.Choice(["powershell", "remote"]))
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Export results to CSV")
def check(
    ctx: click.Context,
    directory: str | None,
    benchmark: str | None,
    timeout: int | None,
    max_workers: int | None,
    executor: str | None,
    output: str | None,
) -> None:
    """Scan, run compliance checks and print the compliance rate.

    Example: stig check -d C:\\STIG_Files -b Windows_Server_2019_STIG -o report.csv
    """
    from ..core.store import BenchmarkNotFoundError

    cli_overrides: dict = _directory_override(directory)
    if timeout:
        cli_overrides.setdefault("checks", {})["timeout_ms"] = timeout
    if max_workers:
        cli_overrides.setdefault("checks", {})["max_workers"] = max_workers
    if executor:
        cli_overrides.setdefault("executor", {})["type"] = executor

    service = _make_service(ctx, cli_overrides)
    service.scan()

    try:
        asyncio.run(service.run_checks(benchmark))
    except BenchmarkNotFoundError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(2)
        return

    stats = service.get_stats()
    click.echo(
        f"Compliance: {stats.rate}%  "
        f"({stats.compliant} compliant, {stats.open} open, {stats.not_applicable} N/A, "
        f"{stats.not_checked} not checked, {stats.error} errors of {stats.total})"
    )

    if output and not service.export_results(Path(output)):
        sys.exit(1)


@stig_cli.group()
def config() -> None:
    """Show or change the stored configuration."""


@config.command("show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    service = _make_service(ctx)
    effective = {k: v for k, v in service.get_config().items() if not k.startswith("_")}
    click.echo(yaml.dump(effective, default_flow_style=False, sort_keys=False).rstrip())


@config.command("set")
@click.pass_context
@click.option("--source-directory", type=str, help="Directory holding STIG XCCDF files")
@click.option("--timeout", type=int, help="Per-check timeout in milliseconds")
@click.option("--max-workers", type=int, help="Checks to run concurrently")
@click.option("--executor", type=click.Choice(["powershell", "remote"]))
def config_set(
    ctx: click.Context,
    source_directory: str | None,
    timeout: int | None,
    max_workers: int | None,
    executor: str | None,
) -> None:
    partial: dict = {}
    if source_directory:
        partial.setdefault("stig", {})["source_directory"] = source_directory
    if timeout:
        partial.setdefault("checks", {})["timeout_ms"] = timeout
    if max_workers:
        partial.setdefault("checks", {})["max_workers"] = max_workers
    if executor:
        partial.setdefault("executor", {})["type"] = executor

    if not partial:
        click.echo("Nothing to change.")
        return

    service = _make_service(ctx)
    service.save_config(partial)
    click.echo(f"Saved to {service.config_path}")


def main() -> None:
    stig_cli()


if __name__ == "__main__":
    main()
