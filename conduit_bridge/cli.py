"""Command-line interface for conduit-bridge."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiohttp

from . import constants
from .app import ConduitBridgeApp
from .bridge_command_names import BridgeChannels
from .config import BridgeConfig, load_config

LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="conduit-bridge",
        description="Host bridge exposing a camera and allow-listed commands",
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=constants.DEFAULT_CONFIG_PATH,
        help=f"Path to configuration file (default: {constants.DEFAULT_CONFIG_PATH})",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("start", help="Start the conduit-bridge service")

    subparsers.add_parser(
        "show-config", help="Print the resolved configuration and exit"
    )

    call_parser = subparsers.add_parser(
        "call", help="Send one command to a running bridge and print the reply"
    )
    call_parser.add_argument("channel", choices=sorted(BridgeChannels.COMMANDS))
    call_parser.add_argument("method", help="Command name, e.g. takePicture")
    call_parser.add_argument(
        "--arg",
        dest="arguments",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Command argument; VALUE is parsed as JSON when possible",
    )

    return parser


def parse_call_arguments(items: List[str]) -> Dict[str, Any]:
    """Turn ``key=value`` pairs into an argument map."""
    arguments: Dict[str, Any] = {}
    for item in items:
        key, separator, value = item.partition("=")
        if not separator or not key:
            raise ValueError(f"Invalid argument '{item}', expected KEY=VALUE")
        try:
            arguments[key] = json.loads(value)
        except json.JSONDecodeError:
            arguments[key] = value
    return arguments


async def call_bridge(
    config: BridgeConfig, channel: str, method: str, arguments: Dict[str, Any]
) -> Dict[str, Any]:
    url = f"http://{config.server.host}:{config.server.port}/channels/{channel}/{method}"
    async with aiohttp.ClientSession() as session:
        async with session.post(url, json=arguments) as response:
            return await response.json()


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = load_config(args.config)

    if args.command == "start":
        ConduitBridgeApp.start(config)
        return 0

    if args.command == "show-config":
        print(f"Configuration loaded from {config.path!s}\n")
        for section in config.raw.sections():
            print(f"[{section}]")
            for key, value in config.raw[section].items():
                print(f"{key} = {value}")
            print()
        return 0

    if args.command == "call":
        try:
            arguments = parse_call_arguments(args.arguments)
        except ValueError as exc:
            LOGGER.error("%s", exc)
            return 2
        try:
            reply = asyncio.run(call_bridge(config, args.channel, args.method, arguments))
        except aiohttp.ClientError as exc:
            LOGGER.error("Bridge request failed: %s", exc)
            return 1
        print(json.dumps(reply, indent=2))
        return 0 if reply.get("status") == "success" else 1

    LOGGER.error("Unknown command: %s", args.command)
    return 1


if __name__ == "__main__":
    sys.exit(main())
