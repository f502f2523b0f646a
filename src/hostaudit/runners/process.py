"""Check process launching.

The runner only needs three capabilities from a child process: stream its
stdout lines, drain its stderr, and await its exit. ProcessLauncher hides
asyncio's subprocess API behind that shape so tests can substitute scripted
fakes.
"""

from __future__ import annotations

import asyncio
import atexit
import logging
import os
import signal
import subprocess
import sys
from collections.abc import AsyncIterator, Sequence
from contextlib import suppress
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

# Default StreamReader limit is 64KB; checks may dump long detail strings
DEFAULT_LINE_LIMIT = 1024 * 1024


class CheckProcess(Protocol):
    """A running check script."""

    @property
    def pid(self) -> int | None: ...

    @property
    def returncode(self) -> int | None: ...

    @property
    def has_stdout(self) -> bool:
        """False when the stdout pipe could not be set up."""
        ...

    def stdout_lines(self) -> AsyncIterator[str]:
        """Yield decoded stdout lines (without trailing newline) until EOF."""
        ...

    def stderr_lines(self) -> AsyncIterator[str]:
        """Yield decoded stderr lines until EOF."""
        ...

    async def wait(self) -> int:
        """Wait for exit and return the exit code."""
        ...

    async def kill(self) -> None:
        """Terminate the process and anything it spawned."""
        ...


class ProcessLauncher(Protocol):
    """Starts check processes."""

    async def launch(self, argv: Sequence[str]) -> CheckProcess:
        """Start ``argv`` with piped stdout/stderr. Raises OSError on failure."""
        ...


# =============================================================================
# PID Registry - last-resort cleanup of spawned check processes
# =============================================================================


class PIDRegistry:
    """Tracks spawned check PIDs so none outlive the interpreter.

    Use get_pid_registry() to obtain the shared instance.
    """

    def __init__(self) -> None:
        self._pids: set[int] = set()
        self._atexit_registered = False

    def register(self, pid: int) -> None:
        self._pids.add(pid)
        self._ensure_atexit_handler()
        logger.debug(f"PID registry: registered {pid}, active: {self._pids}")

    def unregister(self, pid: int) -> None:
        self._pids.discard(pid)
        logger.debug(f"PID registry: unregistered {pid}, active: {self._pids}")

    def get_active_pids(self) -> set[int]:
        return self._pids.copy()

    def kill_all(self) -> list[int]:
        """Kill all registered processes. Returns the PIDs signalled."""
        killed = []
        for pid in list(self._pids):
            if _signal_tree(pid, force=True):
                killed.append(pid)
            self._pids.discard(pid)
        return killed

    def _ensure_atexit_handler(self) -> None:
        if not self._atexit_registered:
            atexit.register(self._atexit_cleanup)
            self._atexit_registered = True

    def _atexit_cleanup(self) -> None:
        if self._pids:
            logger.warning(f"atexit: Cleaning up {len(self._pids)} orphaned check processes")
            killed = self.kill_all()
            if killed:
                logger.warning(f"atexit: Killed PIDs: {killed}")


_pid_registry: PIDRegistry | None = None


def get_pid_registry() -> PIDRegistry:
    global _pid_registry  # noqa: PLW0603
    if _pid_registry is None:
        _pid_registry = PIDRegistry()
    return _pid_registry


def reset_pid_registry() -> None:
    """Reset the shared registry (for tests only)."""
    global _pid_registry  # noqa: PLW0603
    if _pid_registry is not None:
        _pid_registry._pids.clear()
    _pid_registry = None


def _signal_tree(pid: int, force: bool = False) -> bool:
    """Signal a process group (or the bare process). False if already gone."""
    try:
        if sys.platform == "win32":
            result = subprocess.run(
                ["taskkill", "/F", "/T", "/PID", str(pid)],
                capture_output=True,
                check=False,
            )
            return result.returncode == 0
        sig = signal.SIGKILL if force else signal.SIGTERM
        try:
            os.killpg(pid, sig)
        except ProcessLookupError:
            os.kill(pid, sig)
        return True
    except (OSError, ProcessLookupError):
        return False


# =============================================================================
# asyncio implementation
# =============================================================================


async def _iter_lines(stream: asyncio.StreamReader | None) -> AsyncIterator[str]:
    if stream is None:
        return
    while True:
        line = await stream.readline()
        if not line:
            break
        yield line.decode("utf-8", errors="replace").rstrip("\r\n")


class AsyncioCheckProcess:
    """CheckProcess backed by asyncio.subprocess.Process."""

    def __init__(self, process: asyncio.subprocess.Process) -> None:
        self._process = process

    @property
    def pid(self) -> int | None:
        return self._process.pid

    @property
    def returncode(self) -> int | None:
        return self._process.returncode

    @property
    def has_stdout(self) -> bool:
        return self._process.stdout is not None

    def stdout_lines(self) -> AsyncIterator[str]:
        return _iter_lines(self._process.stdout)

    def stderr_lines(self) -> AsyncIterator[str]:
        return _iter_lines(self._process.stderr)

    async def wait(self) -> int:
        try:
            return await self._process.wait()
        finally:
            if self._process.returncode is not None:
                get_pid_registry().unregister(self._process.pid)

    async def kill(self) -> None:
        """Kill the process tree: SIGTERM, grace period, then SIGKILL."""
        process = self._process
        if process.returncode is not None:
            return

        logger.debug(f"Killing process tree for PID {process.pid}")
        if _signal_tree(process.pid):
            try:
                await asyncio.wait_for(process.wait(), timeout=2.0)
            except TimeoutError:
                _signal_tree(process.pid, force=True)

        with suppress(ProcessLookupError):
            await process.wait()
        get_pid_registry().unregister(process.pid)


class AsyncioProcessLauncher:
    """Launches checks with asyncio.create_subprocess_exec."""

    def __init__(
        self,
        cwd: Path | None = None,
        line_limit: int = DEFAULT_LINE_LIMIT,
    ) -> None:
        self.cwd = cwd
        self.line_limit = line_limit

    def _build_subprocess_kwargs(self) -> dict:
        kwargs: dict = {
            "stdin": asyncio.subprocess.DEVNULL,
            "stdout": asyncio.subprocess.PIPE,
            "stderr": asyncio.subprocess.PIPE,
            "limit": self.line_limit,
        }
        if self.cwd is not None:
            kwargs["cwd"] = self.cwd
        if sys.platform != "win32":
            kwargs["start_new_session"] = True
        return kwargs

    async def launch(self, argv: Sequence[str]) -> AsyncioCheckProcess:
        logger.debug(f"Running command: {' '.join(argv)}")
        process = await asyncio.create_subprocess_exec(argv[0], *argv[1:], **self._build_subprocess_kwargs())
        get_pid_registry().register(process.pid)
        return AsyncioCheckProcess(process)
