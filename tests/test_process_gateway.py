"""Tests for the allow-listed process gateway."""

import asyncio
import shutil
import subprocess
import threading
import time
from pathlib import Path

import pytest

from conduit_bridge.core import ExecError, ExecErrorKind, ProcessGateway

requires_coreutils = pytest.mark.skipif(
    shutil.which("pwd") is None or shutil.which("ls") is None,
    reason="pwd/ls binaries not available",
)


class SpyLauncher:
    """Stands in for subprocess.Popen and records every launch."""

    def __init__(self, stdout: str = "", stderr: str = "", returncode: int = 0) -> None:
        self.launches: list[list[str]] = []
        self.kwargs: list[dict] = []
        self.stdout = stdout
        self.stderr = stderr
        self.returncode = returncode
        self.delay = 0.0
        self.communicate_error: Exception | None = None
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def __call__(self, argv, **kwargs):
        self.launches.append(argv)
        self.kwargs.append(kwargs)
        return _SpyProcess(self)


class _SpyProcess:
    def __init__(self, spy: SpyLauncher) -> None:
        self._spy = spy
        self.returncode = None
        self.killed = False

    def communicate(self, timeout=None):
        spy = self._spy
        if self.killed:
            return "", ""
        with spy._lock:
            spy.active += 1
            spy.max_active = max(spy.max_active, spy.active)
        try:
            if spy.delay:
                time.sleep(spy.delay)
            if spy.communicate_error is not None:
                raise spy.communicate_error
            self.returncode = spy.returncode
            return spy.stdout, spy.stderr
        finally:
            with spy._lock:
                spy.active -= 1

    def kill(self):
        self.killed = True
        self.returncode = -9


@pytest.fixture
def spy() -> SpyLauncher:
    return SpyLauncher(stdout="out\n", stderr="", returncode=0)


@pytest.fixture
def gateway(spy):
    gateway = ProcessGateway(launcher=spy)
    yield gateway
    gateway.close()


def test_default_allow_list_is_pwd_and_ls(gateway):
    assert dict(gateway.allow_list) == {"pwd": ("pwd",), "ls": ("ls",)}


def test_allow_list_is_immutable(gateway):
    with pytest.raises(TypeError):
        gateway.allow_list["rm"] = ("rm", "-rf", "/")  # type: ignore[index]


@pytest.mark.asyncio
@pytest.mark.parametrize("command", ["rm", "", "PWD", "ls -la", None, 7])
async def test_unlisted_command_is_rejected_without_launch(gateway, spy, command):
    with pytest.raises(ExecError) as excinfo:
        await gateway.run(command, ["-rf", "/"])

    assert excinfo.value.kind is ExecErrorKind.NOT_WHITELISTED
    assert spy.launches == []


@pytest.mark.asyncio
async def test_supplied_args_are_never_executed(gateway, spy):
    await gateway.run("ls", ["-la", "; rm -rf /"])

    assert spy.launches == [["ls"]]


@pytest.mark.asyncio
async def test_run_uses_no_shell_and_captures_output(spy):
    spy.stdout = "hello\n"
    spy.stderr = "warn\n"
    spy.returncode = 3
    gateway = ProcessGateway({"greet": ["echo", "hello"]}, launcher=spy)

    result = await gateway.run("greet")
    gateway.close()

    assert result.stdout == "hello\n"
    assert result.stderr == "warn\n"
    assert result.exit_code == 3
    assert result.as_dict() == {"stdout": "hello\n", "stderr": "warn\n", "exitCode": 3}
    assert spy.launches == [["echo", "hello"]]
    assert spy.kwargs[0].get("shell", False) is False
    assert spy.kwargs[0]["stdout"] is subprocess.PIPE
    assert spy.kwargs[0]["stderr"] is subprocess.PIPE


@pytest.mark.asyncio
async def test_launch_failure_is_io_failure():
    def launcher(argv, **kwargs):
        raise FileNotFoundError(2, "No such file or directory", argv[0])

    gateway = ProcessGateway({"ghost": ["does-not-exist"]}, launcher=launcher)
    try:
        with pytest.raises(ExecError) as excinfo:
            await gateway.run("ghost")
    finally:
        gateway.close()

    assert excinfo.value.kind is ExecErrorKind.IO_FAILURE
    assert "No such file" in (excinfo.value.detail or "")


@pytest.mark.asyncio
async def test_read_failure_is_io_failure(gateway, spy):
    spy.communicate_error = OSError("broken pipe")

    with pytest.raises(ExecError) as excinfo:
        await gateway.run("ls")

    assert excinfo.value.kind is ExecErrorKind.IO_FAILURE


@pytest.mark.asyncio
async def test_interrupted_wait_is_reported(gateway, spy):
    spy.communicate_error = InterruptedError("signal received")

    with pytest.raises(ExecError) as excinfo:
        await gateway.run("pwd")

    assert excinfo.value.kind is ExecErrorKind.INTERRUPTED


@pytest.mark.asyncio
async def test_timeout_kills_child_and_reports_interruption(spy):
    spy.communicate_error = subprocess.TimeoutExpired(["ls"], 0.5)
    gateway = ProcessGateway(timeout=0.5, launcher=spy)
    try:
        with pytest.raises(ExecError) as excinfo:
            await gateway.run("ls")
    finally:
        gateway.close()

    assert excinfo.value.kind is ExecErrorKind.INTERRUPTED
    assert "timed out" in (excinfo.value.detail or "")


@pytest.mark.asyncio
async def test_overlapping_runs_are_serialized(gateway, spy):
    spy.delay = 0.05

    results = await asyncio.gather(*(gateway.run("ls") for _ in range(3)))

    assert [result.stdout for result in results] == ["out\n"] * 3
    assert spy.max_active == 1
    assert len(spy.launches) == 3


@pytest.mark.asyncio
async def test_run_after_close_is_interrupted(spy):
    gateway = ProcessGateway(launcher=spy)
    gateway.close()
    gateway.close()

    with pytest.raises(ExecError) as excinfo:
        await gateway.run("ls")

    assert excinfo.value.kind is ExecErrorKind.INTERRUPTED
    assert spy.launches == []


@pytest.mark.asyncio
async def test_close_interrupts_queued_runs(gateway, spy):
    spy.delay = 0.2

    first = asyncio.create_task(gateway.run("ls"))
    second = asyncio.create_task(gateway.run("ls"))
    await asyncio.sleep(0.05)
    gateway.close()

    first_result = await first
    with pytest.raises(ExecError) as excinfo:
        await second

    assert first_result.exit_code == 0
    assert excinfo.value.kind is ExecErrorKind.INTERRUPTED
    assert len(spy.launches) == 1


@requires_coreutils
@pytest.mark.asyncio
async def test_pwd_reports_working_directory(tmp_path):
    gateway = ProcessGateway(working_directory=tmp_path)
    try:
        result = await gateway.run("pwd")
    finally:
        gateway.close()

    assert result.exit_code == 0
    assert Path(result.stdout.strip()).resolve() == tmp_path.resolve()


@requires_coreutils
@pytest.mark.asyncio
async def test_overlapping_ls_calls_do_not_interleave(tmp_path):
    for name in ["alpha.txt", "beta.txt", "gamma.txt"]:
        (tmp_path / name).write_text(name, encoding="utf-8")
    gateway = ProcessGateway(working_directory=tmp_path)
    try:
        first, second = await asyncio.gather(gateway.run("ls"), gateway.run("ls"))
    finally:
        gateway.close()

    expected = ["alpha.txt", "beta.txt", "gamma.txt"]
    assert first.exit_code == second.exit_code == 0
    assert first.stdout.split() == expected
    assert second.stdout.split() == expected
