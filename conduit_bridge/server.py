"""HTTP transport for the bridge channels."""

from __future__ import annotations

import contextlib
import json
import logging
from typing import Any, Dict, Optional

from aiohttp import web

from .bridge_command_names import BridgeChannels, BridgeErrorCodes
from .commands import CommandDispatcher
from .core.models import BridgeRequest, Failure, Reply
from .health import HealthReporter

LOGGER = logging.getLogger(__name__)


class BridgeServer:
    """Serves ``POST /channels/{channel}/{command}`` and ``GET /healthz``.

    The request body is a JSON object holding the command arguments; an empty
    body means no arguments. Replies are always JSON objects produced from a
    single :class:`~conduit_bridge.core.models.Reply`.
    """

    def __init__(
        self,
        dispatcher: CommandDispatcher,
        host: str,
        port: int,
        *,
        health: Optional[HealthReporter] = None,
    ) -> None:
        self._dispatcher = dispatcher
        self._host = host
        self._port = port
        self._health = health or HealthReporter()
        self._runner: Optional[web.AppRunner] = None
        self._site: Optional[web.TCPSite] = None

    def create_app(self) -> web.Application:
        app = web.Application()
        app.router.add_post("/channels/{channel}/{command}", self._handle_command)
        app.router.add_get("/healthz", self._handle_health)
        return app

    async def start(self) -> None:
        self._runner = web.AppRunner(self.create_app())
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, self._host, self._port)
        await self._site.start()
        LOGGER.info(
            "Bridge listening on http://%s:%s/channels", self._host, self._port
        )

    async def stop(self) -> None:
        with contextlib.suppress(Exception):
            if self._site is not None:
                await self._site.stop()
        if self._runner is not None:
            await self._runner.cleanup()
        self._site = None
        self._runner = None

    async def _handle_command(self, request: web.Request) -> web.Response:
        channel = request.match_info["channel"]
        command = request.match_info["command"]

        allowed = BridgeChannels.COMMANDS.get(channel)
        if allowed is None:
            return _reply_response(
                Failure(
                    BridgeErrorCodes.NOT_IMPLEMENTED,
                    f"Unknown channel '{channel}'",
                ),
                status=404,
            )

        try:
            arguments = await _read_arguments(request)
        except ValueError as exc:
            return _reply_response(
                Failure(
                    BridgeErrorCodes.INVALID_ARGUMENTS,
                    "Request body must be a JSON object",
                    str(exc),
                ),
                status=400,
            )

        if command not in allowed:
            LOGGER.info("Command %s not implemented on channel %s", command, channel)
            return _reply_response(
                Failure(
                    BridgeErrorCodes.NOT_IMPLEMENTED,
                    f"Command '{command}' is not implemented",
                )
            )

        reply = await self._dispatcher.handle(
            BridgeRequest(command=command, arguments=arguments)
        )
        return _reply_response(reply)

    async def _handle_health(self, request: web.Request) -> web.Response:
        snapshot = await self._health.snapshot()
        snapshot["camera"] = {
            "state": self._dispatcher.camera.state.value,
            "lensDirection": self._dispatcher.camera.lens_direction.value,
        }
        status = 200 if snapshot["status"] == "ok" else 503
        return web.json_response(snapshot, status=status)


async def _read_arguments(request: web.Request) -> Dict[str, Any]:
    body = await request.text()
    if not body.strip():
        return {}
    try:
        payload = json.loads(body)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise ValueError("Arguments must be a JSON object")
    return payload


def _reply_response(reply: Reply, *, status: int = 200) -> web.Response:
    return web.json_response(reply.as_dict(), status=status)
