"""Event types published by the scan engine.

Every event carries an ``event`` discriminant so the stream can be
serialized as JSON lines and decoded back into the right model:

- ScanStarted: full catalog and phase list, always first
- PhaseStarted: a phase begins
- CheckStarted: a check is about to run
- Info / Warn: log lines emitted by a check script
- Prompt: a check asked for interactive input (treated as FAIL)
- CheckCompleted: a check announced a status (may repeat per check)
- Error: infrastructure failure for a check
- ScanCompleted: final tally, score and grade, always last
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from hostaudit.core.models import CheckDefinition, PhaseInfo


class _Event(BaseModel):
    model_config = ConfigDict(frozen=True)


class ScanStarted(_Event):
    """Scan has started; lets consumers render the structure up front."""

    event: Literal["ScanStarted"] = "ScanStarted"
    checks: list[CheckDefinition]
    phases: list[PhaseInfo]


class PhaseStarted(_Event):
    event: Literal["PhaseStarted"] = "PhaseStarted"
    phase_id: str
    phase_label: str


class CheckStarted(_Event):
    event: Literal["CheckStarted"] = "CheckStarted"
    check_id: str


class Info(_Event):
    event: Literal["Info"] = "Info"
    check_id: str
    message: str


class Warn(_Event):
    event: Literal["Warn"] = "Warn"
    check_id: str
    message: str


class Prompt(_Event):
    """A check script requested user input."""

    event: Literal["Prompt"] = "Prompt"
    check_id: str
    message: str = ""
    remediation_id: str = ""
    fail_detail: str = ""
    skip_detail: str = ""


class CheckCompleted(_Event):
    event: Literal["CheckCompleted"] = "CheckCompleted"
    check_id: str
    check_name: str
    status: str
    detail: str = ""


class Error(_Event):
    event: Literal["Error"] = "Error"
    check_id: str
    message: str


class ScanCompleted(_Event):
    """Final aggregate for the scan."""

    event: Literal["ScanCompleted"] = "ScanCompleted"
    passed: int
    failed: int
    skipped: int
    total: int
    score: float
    grade: str


ScanEvent = Annotated[
    Union[
        ScanStarted,
        PhaseStarted,
        CheckStarted,
        Info,
        Warn,
        Prompt,
        CheckCompleted,
        Error,
        ScanCompleted,
    ],
    Field(discriminator="event"),
]

scan_event_adapter: TypeAdapter[ScanEvent] = TypeAdapter(ScanEvent)


def event_to_json(event: ScanEvent) -> str:
    """Serialize an event to a single JSON line (without newline)."""
    return scan_event_adapter.dump_json(event).decode("utf-8")


def event_from_json(data: str | bytes) -> ScanEvent:
    """Decode a JSON line produced by event_to_json."""
    return scan_event_adapter.validate_json(data)
