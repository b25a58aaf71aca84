"""Domain models for bridge requests, replies and captured resources."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple, Union


class LensDirection(str, Enum):
    FRONT = "front"
    BACK = "back"

    @classmethod
    def parse(cls, value: Any) -> "LensDirection":
        """Resolve a caller-supplied lens name, defaulting to the back lens.

        Unknown or non-string values are not an error; they select the back lens.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str) and value.strip().lower() == cls.FRONT.value:
            return cls.FRONT
        return cls.BACK


class SessionState(str, Enum):
    IDLE = "idle"
    ACQUIRING = "acquiring"
    BOUND = "bound"
    CAPTURING = "capturing"
    DISPOSED = "disposed"


@dataclass(frozen=True, slots=True)
class BridgeRequest:
    command: str
    arguments: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Success:
    payload: Any = None

    def as_dict(self) -> Dict[str, Any]:
        return {"status": "success", "result": self.payload}


@dataclass(frozen=True, slots=True)
class Failure:
    code: str
    message: str
    details: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "status": "error",
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
            },
        }


Reply = Union[Success, Failure]


@dataclass(frozen=True, slots=True)
class CapturedImage:
    absolute_path: str


@dataclass(frozen=True, slots=True)
class ProcessInvocation:
    command_key: str
    argv: Tuple[str, ...]


@dataclass(frozen=True, slots=True)
class ProcessResult:
    stdout: str
    stderr: str
    exit_code: int

    def as_dict(self) -> Dict[str, Any]:
        return {
            "stdout": self.stdout,
            "stderr": self.stderr,
            "exitCode": self.exit_code,
        }
