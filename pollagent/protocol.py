from __future__ import annotations

import base64
import json
from dataclasses import asdict, dataclass
from typing import Any, Mapping

from .errors import ProtocolError


@dataclass(frozen=True)
class CommandRequest:
    request: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.request.strip()


def parse_command_request(body: bytes) -> CommandRequest:
    """Decode a poll response body of the form ``{"request": "..."}``."""

    if not body.strip():
        raise ProtocolError("command body is empty")
    try:
        data = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as exc:
        raise ProtocolError(f"command body is not valid JSON: {exc}") from exc
    if not isinstance(data, Mapping):
        raise ProtocolError("command body must be a JSON object")

    request = data.get("request")
    if request is None:
        return CommandRequest()
    if not isinstance(request, str):
        raise ProtocolError("'request' must be a string")
    return CommandRequest(request=request)


@dataclass(frozen=True)
class CommandResult:
    payload: bytes = b""
    has_error: bool = False

    @classmethod
    def ok(cls, payload: bytes = b"") -> CommandResult:
        return cls(payload=payload, has_error=False)

    @classmethod
    def failure(cls, error: BaseException | str) -> CommandResult:
        if isinstance(error, BaseException):
            text = str(error) or type(error).__name__
        else:
            text = error
        return cls(payload=text.encode("utf-8"), has_error=True)


@dataclass(frozen=True)
class OutboundReport:
    mac_address: str
    response: bytes
    has_error: bool

    @classmethod
    def from_result(cls, *, mac_address: str, result: CommandResult) -> OutboundReport:
        return cls(mac_address=mac_address, response=result.payload, has_error=result.has_error)

    def to_wire(self) -> dict[str, Any]:
        # Byte fields travel as standard base64 strings.
        return {
            "macAddress": self.mac_address,
            "response": base64.b64encode(self.response).decode("ascii"),
            "hasError": self.has_error,
        }

    def to_json(self) -> bytes:
        return json.dumps(self.to_wire(), separators=(",", ":")).encode("utf-8")


@dataclass(frozen=True)
class DeviceSpecs:
    """Host inventory snapshot submitted at registration and by ``getos``."""

    hostname: str
    username: str
    user_id: str
    os_name: str
    os_arch: str
    mac_address: str
    local_ip_address: str
    port: str
    fetched_unix: int

    def to_wire(self) -> dict[str, Any]:
        return asdict(self)

    def to_json(self) -> bytes:
        return json.dumps(self.to_wire(), separators=(",", ":")).encode("utf-8")

    def to_pretty_json(self) -> bytes:
        return json.dumps(self.to_wire(), indent=2).encode("utf-8")
