"""Shared test fixtures."""

from __future__ import annotations

import asyncio
import sys
import textwrap
from collections.abc import AsyncIterator, Callable, Iterator, Sequence
from pathlib import Path

import pytest

from hostaudit.core.models import CheckDefinition
from hostaudit.runners.process import reset_pid_registry


def write_check(
    base: Path,
    check_id: str,
    phase: str = "network",
    platform: str = "all",
    order: int = 0,
    name: str | None = None,
    script: str | None = None,
    script_name: str = "check.sh",
    extra: str = "",
) -> Path:
    """Create ``base/checks/<check_id>/check.toml`` (and optionally a script)."""
    check_dir = base / "checks" / check_id
    check_dir.mkdir(parents=True, exist_ok=True)
    (check_dir / "check.toml").write_text(
        textwrap.dedent(
            f"""\
            id = "{check_id}"
            name = "{name or check_id.replace('_', ' ').title()}"
            phase = "{phase}"
            platform = "{platform}"
            description = "Test check {check_id}"
            order = {order}
            """
        )
        + extra
    )
    if script is not None:
        (check_dir / script_name).write_text(textwrap.dedent(script))
    return check_dir


def make_check(
    check_id: str = "firewall",
    phase: str = "network",
    name: str | None = None,
    order: int = 0,
) -> CheckDefinition:
    return CheckDefinition(
        id=check_id,
        name=name or check_id.title(),
        phase=phase,
        platform="all",
        description=f"Checks {check_id}",
        order=order,
    )


class FakeProcess:
    """Scripted stand-in for a running check process."""

    def __init__(
        self,
        stdout: Sequence[str] = (),
        stderr: Sequence[str] = (),
        exit_code: int = 0,
        has_stdout: bool = True,
        read_error: Exception | None = None,
        wait_error: Exception | None = None,
        hang: bool = False,
    ) -> None:
        self._stdout = list(stdout)
        self._stderr = list(stderr)
        self._exit_code = exit_code
        self._has_stdout = has_stdout
        self._read_error = read_error
        self._wait_error = wait_error
        self._hang = hang
        self.returncode: int | None = None
        self.killed = False
        self.pid = 4242

    @property
    def has_stdout(self) -> bool:
        return self._has_stdout

    async def stdout_lines(self) -> AsyncIterator[str]:
        for line in self._stdout:
            await asyncio.sleep(0)
            yield line
        if self._read_error is not None:
            raise self._read_error
        if self._hang:
            await asyncio.sleep(3600)

    async def stderr_lines(self) -> AsyncIterator[str]:
        for line in self._stderr:
            yield line

    async def wait(self) -> int:
        if self._wait_error is not None:
            raise self._wait_error
        if self.returncode is None:
            self.returncode = self._exit_code
        return self.returncode

    async def kill(self) -> None:
        self.killed = True
        if self.returncode is None:
            self.returncode = -9


class FakeLauncher:
    """Hands out FakeProcesses keyed by the check directory name."""

    def __init__(
        self,
        processes: dict[str, FakeProcess] | None = None,
        spawn_error: OSError | None = None,
    ) -> None:
        self.processes = processes or {}
        self.spawn_error = spawn_error
        self.launched: list[list[str]] = []

    async def launch(self, argv: Sequence[str]) -> FakeProcess:
        self.launched.append(list(argv))
        if self.spawn_error is not None:
            raise self.spawn_error
        check_id = Path(argv[1]).parent.name
        return self.processes.get(check_id, FakeProcess())


@pytest.fixture(autouse=True)
def clean_pid_registry() -> Iterator[None]:
    """Start and finish every test with an empty PID registry."""
    reset_pid_registry()
    yield
    reset_pid_registry()


@pytest.fixture
def resource_base(tmp_path: Path) -> Path:
    """An empty resource base with a checks/ directory."""
    (tmp_path / "checks").mkdir()
    return tmp_path


@pytest.fixture
def check_writer(resource_base: Path) -> Callable[..., Path]:
    """Write checks into the resource_base fixture."""

    def _write(check_id: str, **kwargs: object) -> Path:
        return write_check(resource_base, check_id, **kwargs)  # type: ignore[arg-type]

    return _write


@pytest.fixture
def python_interpreter() -> str:
    """Interpreter for real-subprocess tests; scripts are written in Python."""
    return sys.executable
