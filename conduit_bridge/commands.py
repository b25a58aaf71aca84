"""Command handling pipeline for the bridge channels."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Tuple, Union

from .adapters.files import FileQueryService, InvalidPathError, ListFilesError
from .bridge_command_names import BridgeCommandNames, BridgeErrorCodes
from .core.camera_session import (
    CameraNotInitializedError,
    CameraSession,
    CameraStartError,
    CaptureError,
)
from .core.models import BridgeRequest, Failure, LensDirection, Reply, Success
from .core.process_gateway import ExecError, ExecErrorKind, ProcessGateway
from .core.protocols import PermissionOracle
from .health import HealthReporter

LOGGER = logging.getLogger(__name__)


class CommandProcessingError(RuntimeError):
    """Raised when an individual command cannot be processed."""

    def __init__(
        self,
        message: str,
        *,
        code: str,
        details: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.details = details


@dataclass(frozen=True, slots=True)
class TakePictureArguments:
    lens_direction: LensDirection = LensDirection.BACK


@dataclass(frozen=True, slots=True)
class DisposeCameraArguments:
    pass


@dataclass(frozen=True, slots=True)
class ListFilesArguments:
    path: Optional[str] = None


@dataclass(frozen=True, slots=True)
class ExecuteShellCommandArguments:
    command: Optional[str] = None
    args: Tuple[str, ...] = ()


CommandArguments = Union[
    TakePictureArguments,
    DisposeCameraArguments,
    ListFilesArguments,
    ExecuteShellCommandArguments,
]


def parse_arguments(request: BridgeRequest) -> CommandArguments:
    """Validate and normalize the loosely-typed argument map of ``request``.

    Defaults applied here:
        takePicture.lensDirection -> "back" (unknown values also map to back)
        listFiles.path -> None (the private files directory)
        executeShellCommand.args -> () (non-list values are dropped, items
            are stringified; they never reach execution)

    Raises:
        CommandProcessingError: The arguments are malformed or the command is
            unknown.
    """
    arguments: Mapping[str, Any] = request.arguments or {}
    command = request.command

    if command == BridgeCommandNames.TAKE_PICTURE:
        return TakePictureArguments(
            lens_direction=LensDirection.parse(arguments.get("lensDirection"))
        )

    if command == BridgeCommandNames.DISPOSE_CAMERA:
        return DisposeCameraArguments()

    if command == BridgeCommandNames.LIST_FILES:
        path = arguments.get("path")
        if path is not None and not isinstance(path, str):
            raise CommandProcessingError(
                "Path is not a valid directory or does not exist.",
                code=BridgeErrorCodes.INVALID_PATH,
            )
        return ListFilesArguments(path=path or None)

    if command == BridgeCommandNames.EXECUTE_SHELL_COMMAND:
        shell_command = arguments.get("command")
        raw_args = arguments.get("args")
        if isinstance(raw_args, (list, tuple)):
            args = tuple(str(item) for item in raw_args)
        else:
            if raw_args is not None:
                LOGGER.debug(
                    "Dropping non-list args for %s: %r", shell_command, raw_args
                )
            args = ()
        return ExecuteShellCommandArguments(
            command=shell_command if isinstance(shell_command, str) else None,
            args=args,
        )

    raise CommandProcessingError(
        f"Command '{command}' is not implemented",
        code=BridgeErrorCodes.NOT_IMPLEMENTED,
    )


Handler = Callable[[Any], Awaitable[Any]]


class CommandDispatcher:
    """Routes bridge requests to the camera session, file query and process gateway.

    Every call to :meth:`handle` produces exactly one reply; failures are
    converted to :class:`Failure` here and never propagate to the transport.
    """

    def __init__(
        self,
        camera: CameraSession,
        processes: ProcessGateway,
        permissions: PermissionOracle,
        files: Optional[FileQueryService] = None,
        health: Optional[HealthReporter] = None,
    ) -> None:
        self._camera = camera
        self._processes = processes
        self._permissions = permissions
        self._files = files
        self._health = health
        self._camera_lock = asyncio.Lock()
        self._handlers: Dict[str, Handler] = {
            BridgeCommandNames.TAKE_PICTURE: self._execute_take_picture,
            BridgeCommandNames.DISPOSE_CAMERA: self._execute_dispose_camera,
            BridgeCommandNames.EXECUTE_SHELL_COMMAND: self._execute_shell_command,
        }
        if files is not None:
            self._handlers[BridgeCommandNames.LIST_FILES] = self._execute_list_files

    @property
    def camera(self) -> CameraSession:
        return self._camera

    @property
    def commands(self) -> frozenset[str]:
        return frozenset(self._handlers)

    async def handle(self, request: BridgeRequest) -> Reply:
        handler = self._handlers.get(request.command)
        if handler is None:
            LOGGER.info("Command %s not implemented", request.command)
            return Failure(
                BridgeErrorCodes.NOT_IMPLEMENTED,
                f"Command '{request.command}' is not implemented",
            )

        try:
            arguments = parse_arguments(request)
            payload = await handler(arguments)
        except CommandProcessingError as exc:
            LOGGER.warning(
                "Command %s failed: [%s] %s", request.command, exc.code, exc
            )
            return Failure(exc.code, str(exc), exc.details)
        except Exception as exc:
            LOGGER.exception("Command %s raised unexpectedly", request.command)
            return Failure(
                BridgeErrorCodes.INTERNAL_ERROR,
                f"Command '{request.command}' failed unexpectedly",
                repr(exc),
            )

        LOGGER.info("Command %s completed", request.command)
        return Success(payload)

    async def _execute_take_picture(self, arguments: TakePictureArguments) -> str:
        """Handle takePicture.

        The permission gate runs before the session is touched. Overlapping
        requests queue on the camera lock so each one performs its own
        start/capture cycle.
        """
        if not self._permissions.camera_permission_granted():
            raise CommandProcessingError(
                "Camera permissions not granted.",
                code=BridgeErrorCodes.PERMISSION_DENIED,
            )

        async with self._camera_lock:
            try:
                await self._camera.start(arguments.lens_direction)
            except CameraStartError as exc:
                await self._report_camera(False, str(exc))
                raise CommandProcessingError(
                    "Failed to start camera.",
                    code=BridgeErrorCodes.CAMERA_START_FAILED,
                    details=str(exc),
                ) from exc

            try:
                image = await self._camera.capture()
            except CameraNotInitializedError as exc:
                raise CommandProcessingError(
                    str(exc), code=BridgeErrorCodes.CAMERA_NOT_INITIALIZED
                ) from exc
            except CaptureError as exc:
                raise CommandProcessingError(
                    str(exc), code=BridgeErrorCodes.CAPTURE_FAILED, details=exc.details
                ) from exc

        await self._report_camera(True, arguments.lens_direction.value)
        return image.absolute_path

    async def _execute_dispose_camera(self, arguments: DisposeCameraArguments) -> None:
        self._camera.dispose()
        return None

    async def _execute_list_files(self, arguments: ListFilesArguments) -> Dict[str, Any]:
        if self._files is None:
            raise CommandProcessingError(
                "Command 'listFiles' is not implemented",
                code=BridgeErrorCodes.NOT_IMPLEMENTED,
            )
        try:
            return self._files.list_files(arguments.path)
        except InvalidPathError as exc:
            raise CommandProcessingError(
                str(exc), code=BridgeErrorCodes.INVALID_PATH, details=exc.details
            ) from exc
        except ListFilesError as exc:
            raise CommandProcessingError(
                str(exc), code=BridgeErrorCodes.LIST_FILES_FAILED, details=exc.details
            ) from exc
        except OSError as exc:
            raise CommandProcessingError(
                "Failed to list files.",
                code=BridgeErrorCodes.LIST_FILES_FAILED,
                details=str(exc),
            ) from exc

    async def _execute_shell_command(
        self, arguments: ExecuteShellCommandArguments
    ) -> Dict[str, Any]:
        if not self._processes.is_allowed(arguments.command):
            raise CommandProcessingError(
                f"The command '{arguments.command}' is not allowed.",
                code=BridgeErrorCodes.COMMAND_NOT_WHITELISTED,
            )

        try:
            result = await self._processes.run(arguments.command, arguments.args)
        except ExecError as exc:
            raise CommandProcessingError(
                str(exc), code=_EXEC_ERROR_CODES[exc.kind], details=exc.detail
            ) from exc

        return result.as_dict()

    async def _report_camera(self, healthy: bool, detail: Optional[str]) -> None:
        if self._health is None:
            return
        await self._health.update("camera", healthy, detail)


_EXEC_ERROR_CODES = {
    ExecErrorKind.NOT_WHITELISTED: BridgeErrorCodes.COMMAND_NOT_WHITELISTED,
    ExecErrorKind.IO_FAILURE: BridgeErrorCodes.EXECUTION_FAILED,
    ExecErrorKind.INTERRUPTED: BridgeErrorCodes.EXECUTION_INTERRUPTED,
}
