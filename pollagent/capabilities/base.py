from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from ..commands import CommandLine
from ..protocol import DeviceSpecs


class Capability(Protocol):
    """One command verb's effect. Raises on failure."""

    def execute(self, command: CommandLine) -> bytes: ...


class InformationService(Protocol):
    def load_device_specs(self) -> DeviceSpecs: ...


class ScreenshotService(Protocol):
    def take_screenshot(self) -> bytes: ...


class OSService(Protocol):
    def restart(self) -> None: ...

    def shutdown(self) -> None: ...

    def lock(self) -> None: ...

    def sign_out(self) -> None: ...


class ExplorerService(Protocol):
    def explore_directory(self, path: str) -> Any: ...


class FileUploadService(Protocol):
    """Sends a host file to the requester."""

    def upload_file(self, path: str) -> bytes: ...


class FileDownloadService(Protocol):
    """Fetches a file from the requester onto the host."""

    def download_file(self, path: str) -> bytes: ...


class DeleteService(Protocol):
    def delete_file(self, path: str) -> None: ...


class URLService(Protocol):
    def open_url(self, url: str) -> None: ...


class TerminalService(Protocol):
    def run(self, command: str, *, deadline_s: float) -> str: ...


@dataclass
class Services:
    """Capability services installed by the embedding process."""

    information: InformationService
    screenshot: ScreenshotService | None = None
    os: OSService | None = None
    explorer: ExplorerService | None = None
    upload: FileUploadService | None = None
    download: FileDownloadService | None = None
    delete: DeleteService | None = None
    url: URLService | None = None
    terminal: TerminalService | None = None
