"""Centralized command and channel names for the bridge request channel.

Commands are grouped into the two channels the remote caller talks to:
    camera: takePicture, disposeCamera
    files:  listFiles, executeShellCommand

Names are case-sensitive and must match what the caller sends verbatim.
"""

from __future__ import annotations


class BridgeCommandNames:
    """Command name constants for the bridge channels."""

    # -------------------------------------------------------------------------
    # Camera channel
    # -------------------------------------------------------------------------

    TAKE_PICTURE = "takePicture"
    """Start the camera (if needed) and capture a single still image."""

    DISPOSE_CAMERA = "disposeCamera"
    """Release the camera binding; safe to call at any time."""

    # -------------------------------------------------------------------------
    # Files channel
    # -------------------------------------------------------------------------

    LIST_FILES = "listFiles"
    """List the entries of a directory."""

    EXECUTE_SHELL_COMMAND = "executeShellCommand"
    """Run an allow-listed program and return its captured output."""

    # -------------------------------------------------------------------------
    # Command Sets
    # -------------------------------------------------------------------------

    CAMERA_COMMANDS = frozenset({TAKE_PICTURE, DISPOSE_CAMERA})
    """Commands that operate on the camera session."""

    FILES_COMMANDS = frozenset({LIST_FILES, EXECUTE_SHELL_COMMAND})
    """Commands served by the files channel."""


class BridgeChannels:
    """Channel names as exposed by the transport."""

    CAMERA = "camera"
    FILES = "files"

    COMMANDS = {
        CAMERA: BridgeCommandNames.CAMERA_COMMANDS,
        FILES: BridgeCommandNames.FILES_COMMANDS,
    }


class BridgeErrorCodes:
    """Machine-readable error codes carried by failure replies."""

    NOT_IMPLEMENTED = "NOT_IMPLEMENTED"
    INVALID_ARGUMENTS = "INVALID_ARGUMENTS"
    INTERNAL_ERROR = "INTERNAL_ERROR"

    PERMISSION_DENIED = "PERMISSION_DENIED"
    CAMERA_START_FAILED = "CAMERA_START_FAILED"
    CAMERA_NOT_INITIALIZED = "CAMERA_NOT_INITIALIZED"
    CAPTURE_FAILED = "CAPTURE_FAILED"

    INVALID_PATH = "INVALID_PATH"
    LIST_FILES_FAILED = "LIST_FILES_FAILED"

    COMMAND_NOT_WHITELISTED = "COMMAND_NOT_WHITELISTED"
    EXECUTION_FAILED = "EXECUTION_FAILED"
    EXECUTION_INTERRUPTED = "EXECUTION_INTERRUPTED"
