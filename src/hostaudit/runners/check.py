"""Check script runner: executes one check and reads its protocol output."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from pathlib import Path

from hostaudit.core.errors import CheckProcessError
from hostaudit.core.events import CheckCompleted, Info, Prompt, Warn
from hostaudit.core.models import CheckDefinition, CheckOutcome, CheckStatus
from hostaudit.core.sink import EventSink
from hostaudit.runners.process import AsyncioProcessLauncher, CheckProcess, ProcessLauncher
from hostaudit.runners.protocol import (
    LogRecord,
    PromptRecord,
    ProtocolRecord,
    StatusRecord,
    decode_record,
)

logger = logging.getLogger(__name__)

DEFAULT_INTERPRETER = "/bin/bash"
DEFAULT_MODE = "scan"
STDERR_TAIL_LINES = 200


@dataclass
class _CheckState:
    """Mutable per-check state while output is being read."""

    status: str = CheckStatus.FAIL.value
    detail: str = ""
    saw_status: bool = False
    announced: bool = False  # A CheckCompleted was published


class CheckRunner:
    """Runs check scripts one at a time and publishes their events.

    The script is invoked as ``<interpreter> <script> --mode <mode>``. Its
    terminal status starts out as FAIL, so a script that dies before
    reporting anything still resolves to a definite verdict.
    """

    def __init__(
        self,
        launcher: ProcessLauncher | None = None,
        interpreter: str = DEFAULT_INTERPRETER,
        mode: str = DEFAULT_MODE,
        timeout: float | None = None,
    ) -> None:
        self.launcher = launcher or AsyncioProcessLauncher()
        self.interpreter = interpreter
        self.mode = mode
        self.timeout = timeout  # Per-check, None means wait forever

    def build_command(self, script_path: Path) -> list[str]:
        return [self.interpreter, str(script_path), "--mode", self.mode]

    async def run_check(
        self,
        check: CheckDefinition,
        script_path: Path,
        sink: EventSink,
    ) -> CheckOutcome:
        """Execute a check script to completion.

        Args:
            check: The catalog entry being executed
            script_path: Path of the script to run
            sink: Where Info/Warn/Prompt/CheckCompleted events go

        Returns:
            The finalized outcome; its status is the last one announced.

        Raises:
            CheckProcessError: On spawn, read, wait or timeout failures.
            SinkClosedError: If the sink rejects an event.
        """
        try:
            process = await self.launcher.launch(self.build_command(script_path))
        except OSError as e:
            raise CheckProcessError(check.id, f"Failed to spawn check {check.id}: {e}") from e

        if not process.has_stdout:
            await process.kill()
            raise CheckProcessError(check.id, f"No stdout for check {check.id}")

        state = _CheckState()
        stderr_lines: deque[str] = deque(maxlen=STDERR_TAIL_LINES)

        try:
            if self.timeout is None:
                exit_code = await self._consume(process, check, sink, state, stderr_lines)
            else:
                exit_code = await asyncio.wait_for(
                    self._consume(process, check, sink, state, stderr_lines),
                    timeout=self.timeout,
                )
        except TimeoutError as e:
            logger.warning(f"Check {check.id} timed out after {self.timeout} seconds, killing process tree")
            await process.kill()
            raise CheckProcessError(check.id, f"Check {check.id} timed out after {self.timeout} seconds") from e
        except (OSError, ValueError) as e:
            # ValueError: asyncio's stream reader on lines beyond its limit
            await process.kill()
            raise CheckProcessError(check.id, f"IO error reading check {check.id}: {e}") from e
        except BaseException:
            await process.kill()
            raise

        if exit_code != 0 and not state.saw_status:
            logger.warning(f"Check {check.id} exited with code {exit_code} without reporting a status")
            if stderr_lines:
                logger.debug(f"Check {check.id} stderr:\n" + "\n".join(list(stderr_lines)[-20:]))

        if not state.announced:
            # Consumers get exactly one verdict even from silent scripts
            state.detail = f"No status reported (exit code {exit_code})"
            sink.send(
                CheckCompleted(
                    check_id=check.id,
                    check_name=check.name,
                    status=state.status,
                    detail=state.detail,
                )
            )

        return CheckOutcome(
            status=state.status,
            detail=state.detail,
            exit_code=exit_code,
            stderr="\n".join(stderr_lines),
        )

    async def _consume(
        self,
        process: CheckProcess,
        check: CheckDefinition,
        sink: EventSink,
        state: _CheckState,
        stderr_lines: deque[str],
    ) -> int:
        """Read stdout (parsed) and stderr (kept) concurrently, then wait."""
        await asyncio.gather(
            self._read_stdout(process, check, sink, state),
            self._drain_stderr(process, stderr_lines),
        )
        try:
            return await process.wait()
        except OSError as e:
            raise CheckProcessError(check.id, f"Failed to wait for check {check.id}: {e}") from e

    async def _read_stdout(
        self,
        process: CheckProcess,
        check: CheckDefinition,
        sink: EventSink,
        state: _CheckState,
    ) -> None:
        async for line in process.stdout_lines():
            record = decode_record(line)
            if record is None:
                continue
            self._dispatch(record, check, sink, state)

    async def _drain_stderr(self, process: CheckProcess, stderr_lines: deque[str]) -> None:
        async for line in process.stderr_lines():
            stderr_lines.append(line)

    def _dispatch(
        self,
        record: ProtocolRecord,
        check: CheckDefinition,
        sink: EventSink,
        state: _CheckState,
    ) -> None:
        """Publish the events for one record and update the check state."""
        if isinstance(record, PromptRecord):
            # Scans are non-interactive: a prompt is an immediate failure
            sink.send(
                Prompt(
                    check_id=check.id,
                    message=record.message,
                    remediation_id=record.remediation_id,
                    fail_detail=record.fail_detail,
                    skip_detail=record.skip_detail,
                )
            )
            state.status = CheckStatus.FAIL.value
            state.detail = record.fail_detail
            state.announced = True
            sink.send(
                CheckCompleted(
                    check_id=check.id,
                    check_name=check.name,
                    status=CheckStatus.FAIL.value,
                    detail=record.fail_detail,
                )
            )
        elif isinstance(record, LogRecord):
            if record.level == "info":
                sink.send(Info(check_id=check.id, message=record.message))
            elif record.level == "warn":
                sink.send(Warn(check_id=check.id, message=record.message))
            else:
                logger.debug(f"Ignoring log record of type {record.level!r} from {check.id}")
        elif isinstance(record, StatusRecord):
            state.status = record.status
            state.detail = record.detail
            state.saw_status = True
            state.announced = True
            sink.send(
                CheckCompleted(
                    check_id=check.id,
                    check_name=record.check_name if record.check_name is not None else check.name,
                    status=record.status,
                    detail=record.detail,
                )
            )
        else:
            logger.debug(f"Unrecognized record from {check.id}: {record.data}")
