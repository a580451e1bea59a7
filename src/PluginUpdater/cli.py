"""Typer-based CLI for PluginUpdater with Pydantic v2 configuration."""

import json
import logging
import signal
from pathlib import Path
from typing import Any, List, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from PluginUpdater.api import (
    ConfigurationError,
    OutcomeStatus,
    ProgressEvent,
    RunReport,
)
from PluginUpdater.config import (
    export_config_schema,
    load_config,
    validate_config_file,
)
from PluginUpdater.core import CancellationToken
from PluginUpdater.net import http_client
from PluginUpdater.resolvers import build_resolvers, get_registry
from PluginUpdater.runner import UpdateRunner, ingest_paths

console = Console()
app = typer.Typer(help="PluginUpdater: fetch the latest builds of server plugins and Paper jars")

_STATUS_STYLES = {
    OutcomeStatus.UPDATED: "[green]Updated[/green]",
    OutcomeStatus.ALREADY_LATEST: "[cyan]Already latest[/cyan]",
    OutcomeStatus.FAILED: "[red]Failed[/red]",
}

# ============================================================================
# Setup
# ============================================================================


def _setup_logging(verbose: bool) -> None:
    """Setup logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _install_interrupt_handler(token: CancellationToken) -> Any:
    """First Ctrl-C cancels the run; a second one interrupts immediately."""

    previous = signal.getsignal(signal.SIGINT)

    def _handler(signum: int, frame: Any) -> None:
        if token.cancelled:
            raise KeyboardInterrupt
        console.print("[yellow]Cancelling after the current step... (Ctrl-C again to abort)[/yellow]")
        token.cancel()

    try:
        signal.signal(signal.SIGINT, _handler)
    except ValueError:
        # not in the main thread (e.g. embedded runners)
        return None
    return previous


def _restore_interrupt_handler(previous: Any) -> None:
    if previous is not None:
        signal.signal(signal.SIGINT, previous)


# ============================================================================
# Commands
# ============================================================================


@app.command()
def run(
    paths: List[Path] = typer.Argument(..., help="Jar files or directories containing jars"),
    output_dir: Optional[Path] = typer.Option(
        None, "--output-dir", "-o", help="Directory receiving updated jars"
    ),
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config file",
        envvar="PLUGIN_UPDATER_CONFIG",
    ),
    resolver_order: Optional[str] = typer.Option(
        None,
        "--resolver-order",
        help="Comma-separated resolver order",
    ),
    max_workers: Optional[int] = typer.Option(None, "--workers", help="Number of parallel workers"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose"),
) -> None:
    """Check every artifact against the catalogs and download newer builds."""
    _setup_logging(verbose)

    try:
        cli_overrides: dict = {}
        if resolver_order:
            cli_overrides["resolvers"] = {
                "order": [r.strip() for r in resolver_order.split(",") if r.strip()]
            }
        if max_workers is not None:
            cli_overrides["run"] = {"max_workers": max_workers}
        if output_dir is not None:
            cli_overrides["download"] = {"output_dir": str(output_dir)}

        cfg = load_config(path=config, cli_overrides=cli_overrides)
        destination = cfg.download.output_dir
        if output_dir is None and cfg.download.prompt_each_run:
            destination = typer.prompt("Output directory", default=destination)

        ingest = ingest_paths(paths)
        console.print(
            Panel(
                f"[bold green]✓ Config loaded[/bold green]\n"
                f"Hash: {cfg.config_hash()[:8]}...\n"
                f"Artifacts: {len(ingest.descriptors)} "
                f"(duplicates {ingest.duplicates}, skipped {ingest.skipped})\n"
                f"Output: {destination}",
                title="PluginUpdater",
            )
        )
        if not ingest.descriptors:
            console.print("[yellow]No .jar files to process[/yellow]")
            return

        token = CancellationToken()
        previous = _install_interrupt_handler(token)
        try:
            with http_client(cfg) as client:
                runner = UpdateRunner(cfg, client, build_resolvers(cfg))
                report = runner.run(
                    ingest.descriptors,
                    output_dir=destination,
                    cancel=token,
                    listener=_print_progress,
                )
        finally:
            _restore_interrupt_handler(previous)

        _print_report(report)

    except ConfigurationError as e:
        console.print(f"[red]✗ Configuration error: {e}[/red]")
        raise typer.Exit(code=1)


@app.command()
def inspect(
    paths: List[Path] = typer.Argument(..., help="Jar files or directories containing jars"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose"),
) -> None:
    """Show the metadata read from each artifact without contacting any catalog."""
    _setup_logging(verbose)

    ingest = ingest_paths(paths)
    table = Table(title="Artifacts")
    table.add_column("File", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Version", style="yellow")
    table.add_column("Kind", style="magenta")
    table.add_column("Website")
    table.add_column("Status")

    for descriptor in ingest.descriptors:
        table.add_row(
            descriptor.file_name,
            descriptor.display_name,
            descriptor.declared_version,
            descriptor.kind.value,
            descriptor.homepage_url or "-",
            descriptor.status,
        )

    console.print(table)
    console.print(
        f"\n[cyan]Artifacts: {len(ingest.descriptors)} "
        f"(duplicates {ingest.duplicates}, skipped {ingest.skipped})[/cyan]"
    )


@app.command()
def print_config(
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config file",
        envvar="PLUGIN_UPDATER_CONFIG",
    ),
    raw: bool = typer.Option(False, "--raw", help="Raw JSON"),
) -> None:
    """Print merged effective config."""
    try:
        cfg = load_config(path=config)

        data = cfg.model_dump(mode="json")
        if raw:
            typer.echo(json.dumps(data, indent=2))
        else:
            console.print(
                Panel(json.dumps(data, indent=2), title="PluginUpdater Config", expand=False)
            )

    except ConfigurationError as e:
        console.print(f"[red]✗ Error: {e}[/red]")
        raise typer.Exit(code=1)


@app.command()
def validate_config(
    config: str = typer.Argument(..., help="Path to config file"),
) -> None:
    """Validate a config file."""
    try:
        validate_config_file(config)
        console.print("[green]✓ Config valid[/green]")
    except ConfigurationError as e:
        console.print(f"[red]✗ Invalid: {e}[/red]")
        raise typer.Exit(code=1)


@app.command()
def explain(
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config file",
        envvar="PLUGIN_UPDATER_CONFIG",
    ),
) -> None:
    """Explain resolver configuration and ordering."""
    try:
        cfg = load_config(path=config)
        registry = get_registry()

        table = Table(title="Resolver Configuration")
        table.add_column("Order", style="cyan")
        table.add_column("Name", style="green")
        table.add_column("Enabled", style="yellow")
        table.add_column("Base URL")
        table.add_column("Status", style="magenta")

        enabled_count = 0
        for idx, resolver_name in enumerate(cfg.resolvers.order, 1):
            resolver_cfg = getattr(cfg.resolvers, resolver_name, None)
            if resolver_cfg is None:
                table.add_row(str(idx), resolver_name, "-", "-", "[red]✗ Unknown[/red]")
                continue

            in_registry = resolver_name in registry
            status = "[green]✓ Registered[/green]" if in_registry else "[red]✗ Missing[/red]"
            if resolver_cfg.enabled:
                enabled_count += 1

            table.add_row(
                str(idx),
                resolver_name,
                "[green]Yes[/green]" if resolver_cfg.enabled else "[red]No[/red]",
                resolver_cfg.base_url,
                status,
            )

        console.print(table)
        console.print(f"\n[cyan]Enabled: {enabled_count}/{len(cfg.resolvers.order)}[/cyan]")

    except ConfigurationError as e:
        console.print(f"[red]✗ Error: {e}[/red]")
        raise typer.Exit(code=1)


@app.command()
def schema(
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Save schema to file"),
) -> None:
    """Export JSON Schema for UpdaterConfig."""
    schema_data = export_config_schema()

    if output:
        output.write_text(json.dumps(schema_data, indent=2))
        console.print(f"[green]✓ Schema written to {output}[/green]")
    else:
        console.print(Panel(json.dumps(schema_data, indent=2), title="JSON Schema", expand=False))


# ============================================================================
# Helpers
# ============================================================================


def _print_progress(event: ProgressEvent) -> None:
    if event.stage != "completed" or event.outcome is None:
        return
    console.print(
        f"[dim]{event.index + 1}/{event.total}[/dim] {event.artifact_name}: "
        f"{_STATUS_STYLES[event.outcome.status]}"
    )


def _print_report(report: RunReport) -> None:
    table = Table(title="Update Results")
    table.add_column("Plugin", style="cyan")
    table.add_column("Current", style="yellow")
    table.add_column("Latest", style="green")
    table.add_column("Source")
    table.add_column("Result")
    table.add_column("Saved to")
    table.add_column("Detail", overflow="fold")

    for outcome in report.outcomes:
        table.add_row(
            outcome.artifact_name,
            outcome.previous_version,
            outcome.resolved_version,
            outcome.provider,
            _STATUS_STYLES[outcome.status],
            outcome.saved_path or "-",
            outcome.message,
        )

    console.print(table)
    console.print(
        Panel(
            f"Updated: {report.updated}\n"
            f"Already latest: {report.already_latest}\n"
            f"Failed: {report.failed}",
            title="Execution Summary",
        )
    )


def main() -> None:
    """Entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
