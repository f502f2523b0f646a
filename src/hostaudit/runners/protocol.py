"""Decoding of the line protocol spoken by check scripts.

Each stdout line of a check is one JSON object. The kind of record is
decided by which discriminating field is present, in this precedence:
``action`` (prompt), ``type`` (log), ``status`` (terminal status).
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PromptRecord:
    """The script asked for interactive input."""

    message: str = ""
    remediation_id: str = ""
    fail_detail: str = ""
    skip_detail: str = ""


@dataclass(frozen=True)
class LogRecord:
    """An info/warn line. ``level`` may be any string the script sent."""

    level: str
    message: str = ""


@dataclass(frozen=True)
class StatusRecord:
    """A terminal status announcement."""

    status: str
    check_name: str | None = None
    detail: str = ""


@dataclass(frozen=True)
class UnrecognizedRecord:
    """A valid JSON object that matches no known shape."""

    data: dict[str, Any]


ProtocolRecord = PromptRecord | LogRecord | StatusRecord | UnrecognizedRecord


class _WireLine(BaseModel):
    """Known protocol fields. Each must be a string, null or absent."""

    model_config = ConfigDict(strict=True, extra="ignore")

    action: str | None = None
    type: str | None = None
    status: str | None = None
    message: str | None = None
    remediation_id: str | None = None
    fail_detail: str | None = None
    skip_detail: str | None = None
    check_name: str | None = None
    detail: str | None = None


def is_protocol_line(line: str) -> bool:
    """Cheap pre-filter: protocol lines are non-blank and start with '{'."""
    stripped = line.strip()
    return bool(stripped) and stripped.startswith("{")


def classify(data: dict[str, Any]) -> ProtocolRecord:
    """Turn a decoded JSON object into a protocol record.

    Raises:
        ValidationError: If a known field holds something other than a string.
    """
    line = _WireLine.model_validate(data)

    if line.action is not None:
        if line.action == "prompt":
            return PromptRecord(
                message=line.message or "",
                remediation_id=line.remediation_id or "",
                fail_detail=line.fail_detail or "",
                skip_detail=line.skip_detail or "",
            )
        return UnrecognizedRecord(data)

    if line.type is not None:
        return LogRecord(level=line.type, message=line.message or "")

    if line.status is not None:
        return StatusRecord(
            status=line.status,
            check_name=line.check_name,
            detail=line.detail or "",
        )

    return UnrecognizedRecord(data)


def decode_record(line: str) -> ProtocolRecord | None:
    """Decode one stdout line.

    Returns:
        The record, or None if the line is not a protocol line at all
        (blank, stray text, malformed JSON, JSON that is not an object, or
        a known field with a non-string value).
    """
    if not is_protocol_line(line):
        return None

    stripped = line.strip()
    try:
        data = json.loads(stripped)
    except json.JSONDecodeError:
        logger.debug(f"Dropping unparseable line: {stripped[:120]}")
        return None

    if not isinstance(data, dict):
        logger.debug(f"Dropping non-object line: {stripped[:120]}")
        return None

    try:
        return classify(data)
    except ValidationError:
        logger.debug(f"Dropping line with mistyped fields: {stripped[:120]}")
        return None
