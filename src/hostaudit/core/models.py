"""Core data models for hostaudit."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class CheckStatus(str, Enum):
    """Terminal verdict of a check."""

    PASS = "PASS"
    FAIL = "FAIL"
    SKIPPED = "SKIPPED"


# =============================================================================
# Catalog Models
# =============================================================================


class CheckDefinition(BaseModel):
    """A check as declared by its check.toml."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    phase: str
    platform: str
    description: str
    requires_sudo: bool = Field(default=False, description="Advisory only, never enforced")
    order: int = Field(default=0, description="Sort key; ties keep discovery order")


class PhaseInfo(BaseModel):
    """A phase derived from the catalog."""

    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    order: int


# =============================================================================
# Execution Models
# =============================================================================


class CheckOutcome(BaseModel):
    """Finalized result of running one check script.

    ``status`` is kept as a plain string: scripts may report values outside
    CheckStatus, which are published verbatim and counted as failures.
    """

    model_config = ConfigDict(frozen=True)

    status: str = CheckStatus.FAIL.value
    detail: str = ""
    exit_code: int | None = None
    stderr: str = ""


class ScoreResult(BaseModel):
    """Score and letter grade for a finished scan."""

    model_config = ConfigDict(frozen=True)

    score: float
    grade: str


@dataclass
class ScanTally:
    """Running counters of a scan session."""

    passed: int = 0
    failed: int = 0
    skipped: int = 0

    @property
    def total(self) -> int:
        return self.passed + self.failed + self.skipped

    def record(self, status: str) -> None:
        """Count a terminal status; anything unrecognized counts as failed."""
        if status == CheckStatus.PASS.value:
            self.passed += 1
        elif status == CheckStatus.SKIPPED.value:
            self.skipped += 1
        else:
            self.failed += 1
