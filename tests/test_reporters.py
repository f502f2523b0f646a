"""Tests for the terminal and JSON reporters."""

from __future__ import annotations

import io

from rich.console import Console

from hostaudit.core.events import (
    CheckCompleted,
    Error,
    Info,
    PhaseStarted,
    Prompt,
    ScanCompleted,
    ScanStarted,
    Warn,
    event_from_json,
)
from hostaudit.core.models import PhaseInfo
from hostaudit.core.sink import QueueEventSink
from hostaudit.ui.reporters import ConsoleReporter, JsonLinesReporter, consume

from conftest import make_check


def _console() -> tuple[Console, io.StringIO]:
    buffer = io.StringIO()
    return Console(file=buffer, force_terminal=False, width=120), buffer


SUMMARY = ScanCompleted(passed=1, failed=1, skipped=0, total=2, score=50.0, grade="F")


class TestConsoleReporter:
    """Tests for ConsoleReporter."""

    def test_renders_scan(self) -> None:
        console, buffer = _console()
        reporter = ConsoleReporter(console)
        check = make_check("firewall", name="Firewall enabled")

        reporter.handle(ScanStarted(checks=[check], phases=[PhaseInfo(id="network", label="Network", order=2)]))
        reporter.handle(PhaseStarted(phase_id="network", phase_label="Network"))
        reporter.handle(CheckCompleted(check_id="firewall", check_name="Firewall enabled", status="PASS", detail="pf on"))
        reporter.handle(SUMMARY)

        output = buffer.getvalue()
        assert "Scanning 1 checks in 1 phases" in output
        assert "Network" in output
        assert "Pass" in output
        assert "Firewall enabled - pf on" in output
        assert "50%" in output
        assert reporter.summary == SUMMARY

    def test_info_only_when_verbose(self) -> None:
        console, buffer = _console()
        ConsoleReporter(console).handle(Info(check_id="a", message="quiet detail"))
        assert "quiet detail" not in buffer.getvalue()

        console, buffer = _console()
        ConsoleReporter(console, verbose=True).handle(Info(check_id="a", message="quiet detail"))
        assert "quiet detail" in buffer.getvalue()

    def test_warn_prompt_and_error(self) -> None:
        console, buffer = _console()
        reporter = ConsoleReporter(console)
        reporter.handle(ScanStarted(checks=[make_check("ssh", name="SSH")], phases=[]))

        reporter.handle(Warn(check_id="ssh", message="port open"))
        reporter.handle(Prompt(check_id="ssh", message="Disable root login?"))
        reporter.handle(Error(check_id="ssh", message="check.sh not found"))

        output = buffer.getvalue()
        assert "! port open" in output
        assert "? Disable root login?" in output
        assert "ERROR SSH: check.sh not found" in output

    def test_unknown_status_shown_verbatim(self) -> None:
        console, buffer = _console()

        ConsoleReporter(console).handle(CheckCompleted(check_id="a", check_name="A", status="WARN"))

        assert "WARN" in buffer.getvalue()

    def test_script_text_is_not_markup(self) -> None:
        console, buffer = _console()

        ConsoleReporter(console).handle(
            CheckCompleted(check_id="a", check_name="A", status="FAIL", detail="[/bold] value [red]x")
        )

        assert "[/bold] value [red]x" in buffer.getvalue()


class TestJsonLinesReporter:
    """Tests for JsonLinesReporter."""

    def test_one_line_per_event(self) -> None:
        stream = io.StringIO()
        reporter = JsonLinesReporter(stream)
        events = [
            PhaseStarted(phase_id="network", phase_label="Network"),
            Warn(check_id="ssh", message="multi\nline"),
            SUMMARY,
        ]

        for event in events:
            reporter.handle(event)

        lines = stream.getvalue().splitlines()
        assert len(lines) == 3
        assert [event_from_json(line) for line in lines] == events
        assert reporter.summary == SUMMARY


async def test_consume_drains_sink() -> None:
    sink = QueueEventSink()
    stream = io.StringIO()
    reporter = JsonLinesReporter(stream)

    sink.send(PhaseStarted(phase_id="network", phase_label="Network"))
    sink.send(SUMMARY)
    sink.close()
    await consume(sink, reporter)

    assert len(stream.getvalue().splitlines()) == 2
    assert reporter.summary == SUMMARY
