from .base import (
    Capability,
    DeleteService,
    ExplorerService,
    FileDownloadService,
    FileUploadService,
    InformationService,
    OSService,
    ScreenshotService,
    Services,
    TerminalService,
    URLService,
)
from .host import HostInformationService
from .verbs import (
    DeleteCapability,
    DownloadCapability,
    ExploreCapability,
    GetOSCapability,
    OpenURLCapability,
    PowerCapability,
    ScreenshotCapability,
    TerminalCapability,
    UnavailableCapability,
    UploadCapability,
)

__all__ = [
    "Capability",
    "DeleteCapability",
    "DeleteService",
    "DownloadCapability",
    "ExploreCapability",
    "ExplorerService",
    "FileDownloadService",
    "FileUploadService",
    "GetOSCapability",
    "HostInformationService",
    "InformationService",
    "OSService",
    "OpenURLCapability",
    "PowerCapability",
    "ScreenshotCapability",
    "ScreenshotService",
    "Services",
    "TerminalCapability",
    "TerminalService",
    "URLService",
    "UnavailableCapability",
    "UploadCapability",
]
