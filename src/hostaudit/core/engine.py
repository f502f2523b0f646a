"""Scan engine: runs the catalog phase by phase and aggregates results."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from hostaudit.core.catalog import CHECKS_DIRNAME, build_phase_list, load_catalog, resolve_resource_base
from hostaudit.core.errors import CheckProcessError
from hostaudit.core.events import (
    CheckCompleted,
    CheckStarted,
    Error,
    PhaseStarted,
    ScanCompleted,
    ScanStarted,
)
from hostaudit.core.models import CheckDefinition, CheckStatus, PhaseInfo, ScanTally
from hostaudit.core.scoring import score_tally
from hostaudit.core.sink import EventSink
from hostaudit.runners.check import CheckRunner

if TYPE_CHECKING:
    from hostaudit.config import Config

logger = logging.getLogger(__name__)

DEFAULT_SCRIPT_NAME = "check.sh"


class ScanEngine:
    """Executes checks strictly one after another and reports via a sink.

    Infrastructure failures of a single check (missing script, spawn or I/O
    errors) become FAIL outcomes and the scan moves on. Only a sink failure
    aborts the scan.
    """

    def __init__(
        self,
        resource_base: Path,
        runner: CheckRunner,
        sink: EventSink,
        script_name: str = DEFAULT_SCRIPT_NAME,
    ) -> None:
        self.resource_base = resource_base
        self.runner = runner
        self.sink = sink
        self.script_name = script_name
        self.tally = ScanTally()

    def script_path(self, check: CheckDefinition) -> Path:
        return self.resource_base / CHECKS_DIRNAME / check.id / self.script_name

    async def run(
        self,
        checks: Sequence[CheckDefinition],
        phases: Sequence[PhaseInfo],
    ) -> ScanCompleted:
        """Run every check, phase by phase, and emit the final tally.

        Args:
            checks: Catalog in order (as returned by load_catalog)
            phases: Ordered phase list (as returned by build_phase_list)

        Returns:
            The ScanCompleted event that was emitted last.

        Raises:
            SinkClosedError: If the consumer went away mid-scan.
        """
        self.tally = ScanTally()
        self.sink.send(ScanStarted(checks=list(checks), phases=list(phases)))

        for phase in phases:
            logger.info(f"Phase {phase.id}: {phase.label}")
            self.sink.send(PhaseStarted(phase_id=phase.id, phase_label=phase.label))

            for check in (c for c in checks if c.phase == phase.id):
                self.sink.send(CheckStarted(check_id=check.id))
                status = await self._execute_check(check)
                self.tally.record(status)
                logger.debug(f"Check {check.id} finished with {status}")

        score = score_tally(self.tally)
        completed = ScanCompleted(
            passed=self.tally.passed,
            failed=self.tally.failed,
            skipped=self.tally.skipped,
            total=self.tally.total,
            score=score.score,
            grade=score.grade,
        )
        self.sink.send(completed)
        logger.info(f"Scan completed: {completed.passed}/{completed.total} passed, grade {completed.grade}")
        return completed

    async def _execute_check(self, check: CheckDefinition) -> str:
        """Run one check and return the status to count."""
        script_path = self.script_path(check)

        if not script_path.exists():
            logger.warning(f"Check {check.id}: {self.script_name} not found at {script_path}")
            self._report_failure(
                check,
                message=f"{self.script_name} not found at {script_path}",
                detail=f"{self.script_name} not found",
            )
            return CheckStatus.FAIL.value

        try:
            outcome = await self.runner.run_check(check, script_path, self.sink)
        except CheckProcessError as e:
            logger.warning(f"Check {check.id} could not be run: {e}")
            self._report_failure(check, message=str(e), detail=str(e))
            return CheckStatus.FAIL.value

        return outcome.status

    def _report_failure(self, check: CheckDefinition, message: str, detail: str) -> None:
        self.sink.send(Error(check_id=check.id, message=message))
        self.sink.send(
            CheckCompleted(
                check_id=check.id,
                check_name=check.name,
                status=CheckStatus.FAIL.value,
                detail=detail,
            )
        )


async def run_scan(config: Config, sink: EventSink, resource_base: Path | None = None) -> ScanCompleted:
    """Load the catalog described by ``config`` and scan it.

    Raises:
        CatalogError: Before any event is sent, if the catalog is unusable.
        SinkClosedError: If the consumer goes away mid-scan.
    """
    base = resource_base or resolve_resource_base(config.resource_base)
    checks = load_catalog(base, platform=config.platform)
    phases = build_phase_list(checks)
    logger.info(f"Loaded {len(checks)} checks in {len(phases)} phases from {base}")

    runner = CheckRunner(
        launcher=config.build_launcher(),
        interpreter=config.interpreter,
        mode=config.mode,
        timeout=config.check_timeout,
    )
    engine = ScanEngine(base, runner, sink, script_name=config.script_name)
    return await engine.run(checks, phases)
