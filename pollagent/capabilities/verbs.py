from __future__ import annotations

import json
from dataclasses import asdict, is_dataclass
from typing import Any, Callable

from ..commands import CommandLine
from ..errors import CapabilityUnavailableError
from .base import (
    DeleteService,
    ExplorerService,
    FileDownloadService,
    FileUploadService,
    InformationService,
    OSService,
    ScreenshotService,
    TerminalService,
    URLService,
)


class GetOSCapability:
    def __init__(self, information: InformationService) -> None:
        self.information = information

    def execute(self, command: CommandLine) -> bytes:
        # Specs are read fresh on every request.
        return self.information.load_device_specs().to_pretty_json()


class ScreenshotCapability:
    def __init__(self, screenshot: ScreenshotService) -> None:
        self.screenshot = screenshot

    def execute(self, command: CommandLine) -> bytes:
        return bytes(self.screenshot.take_screenshot())


class PowerCapability:
    """restart / shutdown / lock / sign-out. Success carries no payload."""

    def __init__(self, action: Callable[[], None]) -> None:
        self.action = action

    @classmethod
    def for_verb(cls, os_service: OSService, verb: str) -> PowerCapability:
        actions: dict[str, Callable[[], None]] = {
            "restart": os_service.restart,
            "shutdown": os_service.shutdown,
            "lock": os_service.lock,
            "sign-out": os_service.sign_out,
        }
        return cls(actions[verb])

    def execute(self, command: CommandLine) -> bytes:
        self.action()
        return b""


def _json_default(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class ExploreCapability:
    def __init__(self, explorer: ExplorerService) -> None:
        self.explorer = explorer

    def execute(self, command: CommandLine) -> bytes:
        path = command.arg(0, name="path")
        listing = self.explorer.explore_directory(path)
        return json.dumps(listing, separators=(",", ":"), default=_json_default).encode("utf-8")


class DownloadCapability:
    """``download <path>``: the requester pulls a host file.

    The transfer itself is done by the upload service; the verb keeps the
    name the command server uses.
    """

    def __init__(self, upload: FileUploadService) -> None:
        self.upload = upload

    def execute(self, command: CommandLine) -> bytes:
        return bytes(self.upload.upload_file(command.require_remainder(name="path")))


class UploadCapability:
    """``upload <path>``: the requester pushes a file onto the host."""

    def __init__(self, download: FileDownloadService) -> None:
        self.download = download

    def execute(self, command: CommandLine) -> bytes:
        return bytes(self.download.download_file(command.require_remainder(name="path")))


class DeleteCapability:
    def __init__(self, delete: DeleteService) -> None:
        self.delete = delete

    def execute(self, command: CommandLine) -> bytes:
        self.delete.delete_file(command.require_remainder(name="path"))
        return b""


class OpenURLCapability:
    def __init__(self, url: URLService) -> None:
        self.url = url

    def execute(self, command: CommandLine) -> bytes:
        self.url.open_url(command.arg(0, name="url"))
        return b""


class TerminalCapability:
    """Fallback for unrecognized verbs: runs the whole raw text."""

    def __init__(self, terminal: TerminalService, *, deadline_s: float) -> None:
        if deadline_s <= 0:
            raise ValueError("deadline_s must be > 0")
        self.terminal = terminal
        self.deadline_s = float(deadline_s)

    def execute(self, command: CommandLine) -> bytes:
        return self.terminal.run(command.raw, deadline_s=self.deadline_s).encode("utf-8")


class UnavailableCapability:
    def __init__(self, name: str) -> None:
        self.name = name

    def execute(self, command: CommandLine) -> bytes:
        raise CapabilityUnavailableError(f"{self.name} capability is not available on this host")
