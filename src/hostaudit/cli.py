"""CLI interface for hostaudit."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from hostaudit import __version__
from hostaudit.config import DEFAULT_CONFIG_PATH, Config
from hostaudit.core.catalog import build_phase_list, load_catalog, resolve_resource_base
from hostaudit.core.engine import run_scan
from hostaudit.core.errors import CatalogError, ConfigError
from hostaudit.core.events import ScanCompleted
from hostaudit.core.sink import QueueEventSink
from hostaudit.ui.reporters import ConsoleReporter, JsonLinesReporter, Reporter, consume

app = typer.Typer(
    name="hostaudit",
    help="Run host security checks and grade the results.",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_CHECKS_FAILED = 1
EXIT_USAGE = 2

ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", "-c", help="Path to config.yaml (default: .hostaudit/config.yaml)"),
]
BaseOption = Annotated[
    Path | None,
    typer.Option("--base", "-b", help="Directory containing checks/", file_okay=False),
]
PlatformOption = Annotated[
    str | None,
    typer.Option("--platform", help="Platform tag for filtering checks (default: this host)"),
]
JsonOption = Annotated[
    bool,
    typer.Option("--json", help="Emit JSON instead of formatted output"),
]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Show check info lines and debug logging"),
]


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _load_config(config_path: Path | None, verbose: bool) -> Config:
    try:
        config = Config.load(config_path)
    except ConfigError as e:
        err_console.print(f"[red]{e}[/red]")
        raise typer.Exit(EXIT_USAGE) from e
    _setup_logging("DEBUG" if verbose else config.log_level)
    return config


def _apply_overrides(
    config: Config,
    base: Path | None,
    platform: str | None,
    **overrides: object,
) -> Config:
    update: dict[str, object] = {k: v for k, v in overrides.items() if v is not None}
    if base is not None:
        update["resource_base"] = base
    if platform is not None:
        update["platform"] = platform
    return config.model_copy(update=update) if update else config


async def _report(sink: QueueEventSink, reporter: Reporter) -> None:
    """Drain the sink into the reporter; a dead reporter closes the sink."""
    try:
        await consume(sink, reporter)
    finally:
        sink.close()


async def _scan(config: Config, reporter: Reporter) -> ScanCompleted:
    """Run the engine and the reporter side by side over a queue sink.

    If the reporter fails, the engine's next send raises SinkClosedError and
    the scan stops; the reporter's own exception is what propagates.
    """
    sink = QueueEventSink()
    consumer = asyncio.create_task(_report(sink, reporter))
    try:
        return await run_scan(config, sink)
    finally:
        sink.close()
        await consumer


@app.command()
def scan(
    config_path: ConfigOption = None,
    base: BaseOption = None,
    platform: PlatformOption = None,
    interpreter: Annotated[
        str | None,
        typer.Option("--interpreter", help="Interpreter used to run check scripts"),
    ] = None,
    timeout: Annotated[
        float | None,
        typer.Option("--timeout", "-t", help="Per-check timeout in seconds (default: none)", min=0.001),
    ] = None,
    as_json: JsonOption = False,
    verbose: VerboseOption = False,
) -> None:
    """Run every applicable check and print the graded result."""
    config = _apply_overrides(
        _load_config(config_path, verbose),
        base,
        platform,
        interpreter=interpreter,
        check_timeout=timeout,
        output="json" if as_json else None,
    )

    reporter: Reporter
    if config.output == "json":
        reporter = JsonLinesReporter(sys.stdout)
    else:
        reporter = ConsoleReporter(console, verbose=verbose)

    try:
        result = asyncio.run(_scan(config, reporter))
    except CatalogError as e:
        err_console.print(f"[red]Catalog error: {e}[/red]")
        raise typer.Exit(EXIT_USAGE) from e

    raise typer.Exit(EXIT_CHECKS_FAILED if result.failed else EXIT_OK)


@app.command()
def catalog(
    config_path: ConfigOption = None,
    base: BaseOption = None,
    platform: PlatformOption = None,
    as_json: JsonOption = False,
    verbose: VerboseOption = False,
) -> None:
    """List the applicable checks in scan order without running them."""
    config = _apply_overrides(_load_config(config_path, verbose), base, platform)

    try:
        resource_base = resolve_resource_base(config.resource_base)
        checks = load_catalog(resource_base, platform=config.platform)
    except CatalogError as e:
        err_console.print(f"[red]Catalog error: {e}[/red]")
        raise typer.Exit(EXIT_USAGE) from e

    phases = build_phase_list(checks)

    if as_json:
        payload = {
            "checks": [c.model_dump() for c in checks],
            "phases": [p.model_dump() for p in phases],
        }
        console.print_json(json.dumps(payload))
        return

    table = Table(title=f"Checks ({resource_base})")
    table.add_column("Phase", style="cyan")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Order", justify="right")
    table.add_column("Sudo")

    for phase in phases:
        for check in (c for c in checks if c.phase == phase.id):
            table.add_row(
                phase.label,
                check.id,
                check.name,
                str(check.order),
                "yes" if check.requires_sudo else "-",
            )

    console.print(table)
    console.print(f"[dim]{len(checks)} checks in {len(phases)} phases[/dim]")


@app.command()
def init(
    config_path: Annotated[
        Path,
        typer.Option("--config", "-c", help="Where to write the configuration"),
    ] = DEFAULT_CONFIG_PATH,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite an existing configuration"),
    ] = False,
) -> None:
    """Write a default configuration file."""
    if config_path.exists() and not force:
        err_console.print(f"[yellow]{config_path} already exists (use --force to overwrite)[/yellow]")
        raise typer.Exit(EXIT_USAGE)

    Config().save(config_path)
    console.print(f"[green]Wrote {config_path}[/green]")


@app.command()
def version() -> None:
    """Show the installed version."""
    console.print(f"hostaudit {__version__}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
