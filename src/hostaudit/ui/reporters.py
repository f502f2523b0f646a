"""Event stream consumers for the terminal."""

from __future__ import annotations

from collections.abc import AsyncIterable
from typing import Protocol, TextIO

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from hostaudit.core.events import (
    CheckCompleted,
    Error,
    Info,
    PhaseStarted,
    Prompt,
    ScanCompleted,
    ScanEvent,
    ScanStarted,
    Warn,
    event_to_json,
)

STATUS_STYLES: dict[str, str] = {
    "PASS": "green",
    "FAIL": "red",
    "SKIPPED": "dim",
}

STATUS_LABELS: dict[str, str] = {
    "PASS": "Pass",
    "FAIL": "Fail",
    "SKIPPED": "Skipped",
}

GRADE_STYLES: dict[str, str] = {
    "A": "bold green",
    "B": "green",
    "C": "yellow",
    "D": "dark_orange",
    "F": "bold red",
}


class Reporter(Protocol):
    """Something that renders scan events as they arrive."""

    def handle(self, event: ScanEvent) -> None: ...


async def consume(events: AsyncIterable[ScanEvent], reporter: Reporter) -> None:
    """Feed every event of an async stream to a reporter."""
    async for event in events:
        reporter.handle(event)


class ConsoleReporter:
    """Renders the scan with rich: phase rules, status badges, summary."""

    def __init__(self, console: Console | None = None, verbose: bool = False) -> None:
        self.console = console or Console()
        self.verbose = verbose
        self._names: dict[str, str] = {}
        self.summary: ScanCompleted | None = None

    def handle(self, event: ScanEvent) -> None:
        if isinstance(event, ScanStarted):
            self._names = {c.id: c.name for c in event.checks}
            self.console.print(
                f"[bold]Scanning {len(event.checks)} checks in {len(event.phases)} phases[/bold]"
            )
        elif isinstance(event, PhaseStarted):
            self.console.print()
            self.console.rule(f"[bold cyan]{escape(event.phase_label)}[/bold cyan]", align="left")
        elif isinstance(event, Info):
            if self.verbose:
                self.console.print(f"    [dim]{escape(event.message)}[/dim]")
        elif isinstance(event, Warn):
            self.console.print(f"    [yellow]! {escape(event.message)}[/yellow]")
        elif isinstance(event, Prompt):
            message = event.message or "Check requested interactive input"
            self.console.print(f"    [magenta]? {escape(message)}[/magenta]")
        elif isinstance(event, Error):
            self.console.print(f"    [red]ERROR {escape(self._name(event.check_id))}: {escape(event.message)}[/red]")
        elif isinstance(event, CheckCompleted):
            self._print_check(event)
        elif isinstance(event, ScanCompleted):
            self.summary = event
            self._print_summary(event)

    def _name(self, check_id: str) -> str:
        return self._names.get(check_id, check_id)

    def _print_check(self, event: CheckCompleted) -> None:
        style = STATUS_STYLES.get(event.status, "red")
        label = STATUS_LABELS.get(event.status, event.status)
        line = f"  [{style}]{escape(label):<8}[/{style}] {escape(event.check_name)}"
        if event.detail:
            line += f" [dim]- {escape(event.detail)}[/dim]"
        self.console.print(line)

    def _print_summary(self, event: ScanCompleted) -> None:
        grade_style = GRADE_STYLES.get(event.grade, GRADE_STYLES["F"])
        self.console.print()
        table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
        table.add_column("Grade")
        table.add_column("Score", justify="right")
        table.add_column("Passed", justify="right", style="green")
        table.add_column("Failed", justify="right", style="red")
        table.add_column("Skipped", justify="right", style="dim")
        table.add_column("Total", justify="right")
        table.add_row(
            f"[{grade_style}]{event.grade}[/{grade_style}]",
            f"{round(event.score)}%",
            str(event.passed),
            str(event.failed),
            str(event.skipped),
            str(event.total),
        )
        self.console.print(table)


class JsonLinesReporter:
    """Writes one JSON object per event, flushing after each line."""

    def __init__(self, stream: TextIO) -> None:
        self.stream = stream
        self.summary: ScanCompleted | None = None

    def handle(self, event: ScanEvent) -> None:
        if isinstance(event, ScanCompleted):
            self.summary = event
        self.stream.write(event_to_json(event) + "\n")
        self.stream.flush()
