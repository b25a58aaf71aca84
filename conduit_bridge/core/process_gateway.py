"""Allow-listed process execution on a dedicated single worker."""

from __future__ import annotations

import asyncio
import logging
import subprocess
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence, Tuple

from ..constants import DEFAULT_ALLOW_LIST
from .models import ProcessInvocation, ProcessResult

LOGGER = logging.getLogger(__name__)


class ExecErrorKind(str, Enum):
    NOT_WHITELISTED = "not_whitelisted"
    IO_FAILURE = "io_failure"
    INTERRUPTED = "interrupted"


class ExecError(RuntimeError):
    """Raised when an execution request cannot be completed."""

    def __init__(
        self,
        message: str,
        *,
        kind: ExecErrorKind,
        detail: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.detail = detail


Launcher = Callable[..., Any]


class ProcessGateway:
    """Runs programs from a fixed allow-list and captures their output.

    The allow-list maps a logical command name to a literal argument vector.
    Caller-supplied arguments are accepted but never appended to that vector.
    Executions are serialized on one worker thread so blocking reads never run
    on the event loop and overlapping requests queue in arrival order.
    """

    def __init__(
        self,
        allow_list: Optional[Mapping[str, Sequence[str]]] = None,
        *,
        working_directory: Optional[Path] = None,
        timeout: Optional[float] = None,
        launcher: Launcher = subprocess.Popen,
    ) -> None:
        entries = DEFAULT_ALLOW_LIST if allow_list is None else allow_list
        self._allow_list: Mapping[str, Tuple[str, ...]] = MappingProxyType(
            {key: tuple(argv) for key, argv in entries.items() if argv}
        )
        self._working_directory = working_directory
        self._timeout = timeout
        self._launcher = launcher
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="process-gateway"
        )
        self._closed = False

    @property
    def allow_list(self) -> Mapping[str, Tuple[str, ...]]:
        return self._allow_list

    def is_allowed(self, command_key: Any) -> bool:
        return isinstance(command_key, str) and command_key in self._allow_list

    def resolve(self, command_key: Any) -> ProcessInvocation:
        """Map a command key to its allow-listed invocation.

        Raises:
            ExecError: ``command_key`` is not allow-listed.
        """
        if not self.is_allowed(command_key):
            raise ExecError(
                f"The command '{command_key}' is not allowed.",
                kind=ExecErrorKind.NOT_WHITELISTED,
            )
        return ProcessInvocation(
            command_key=command_key, argv=self._allow_list[command_key]
        )

    async def run(
        self, command_key: Any, supplied_args: Iterable[str] = ()
    ) -> ProcessResult:
        """Execute the allow-listed program for ``command_key``.

        Raises:
            ExecError: Not allow-listed, launch/read failure, or interruption.
        """
        invocation = self.resolve(command_key)
        ignored = list(supplied_args)
        if ignored:
            LOGGER.debug(
                "Ignoring caller-supplied arguments for %s: %s",
                invocation.command_key,
                ignored,
            )

        if self._closed:
            raise ExecError(
                "Command execution interrupted",
                kind=ExecErrorKind.INTERRUPTED,
                detail="process gateway is shut down",
            )

        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(
                self._executor, self._execute, invocation
            )
        except asyncio.CancelledError:
            if self._closed:
                raise ExecError(
                    "Command execution interrupted",
                    kind=ExecErrorKind.INTERRUPTED,
                    detail="process gateway is shut down",
                ) from None
            raise

    def close(self) -> None:
        """Stop accepting work and drop queued executions."""
        if self._closed:
            return
        self._closed = True
        self._executor.shutdown(wait=False, cancel_futures=True)

    def _execute(self, invocation: ProcessInvocation) -> ProcessResult:
        LOGGER.debug("Launching %s: %s", invocation.command_key, invocation.argv)
        try:
            process = self._launcher(
                list(invocation.argv),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                cwd=self._working_directory,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as exc:
            raise ExecError(
                "IO error executing command",
                kind=ExecErrorKind.IO_FAILURE,
                detail=str(exc),
            ) from exc

        try:
            stdout, stderr = process.communicate(timeout=self._timeout)
        except subprocess.TimeoutExpired as exc:
            _terminate(process)
            raise ExecError(
                "Command execution interrupted",
                kind=ExecErrorKind.INTERRUPTED,
                detail=f"timed out after {self._timeout}s",
            ) from exc
        except InterruptedError as exc:
            _terminate(process)
            raise ExecError(
                "Command execution interrupted",
                kind=ExecErrorKind.INTERRUPTED,
                detail=str(exc),
            ) from exc
        except OSError as exc:
            _terminate(process)
            raise ExecError(
                "IO error executing command",
                kind=ExecErrorKind.IO_FAILURE,
                detail=str(exc),
            ) from exc

        return ProcessResult(
            stdout=stdout or "",
            stderr=stderr or "",
            exit_code=process.returncode,
        )


def _terminate(process: Any) -> None:
    try:
        process.kill()
        process.communicate()
    except OSError:
        LOGGER.debug("Child process already gone", exc_info=True)
