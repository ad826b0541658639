from __future__ import annotations

import getpass
import os
import platform
import socket
import time
from typing import Callable

from ..errors import CapabilityError
from ..identity import AgentIdentity
from ..protocol import DeviceSpecs


def _local_ip_address() -> str:
    """Best-effort outbound interface address; no packets are sent."""

    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        sock.connect(("8.8.8.8", 80))
        return str(sock.getsockname()[0])
    except OSError:
        return "127.0.0.1"
    finally:
        sock.close()


def _user_id() -> str:
    getuid = getattr(os, "getuid", None)
    if getuid is None:
        return ""
    return str(getuid())


class HostInformationService:
    """Reads host inventory with the standard library."""

    def __init__(
        self,
        *,
        identity: AgentIdentity,
        port: str = "",
        ip_fn: Callable[[], str] = _local_ip_address,
        now_fn: Callable[[], float] = time.time,
    ) -> None:
        self.identity = identity
        self.port = port
        self._ip_fn = ip_fn
        self._now_fn = now_fn

    def load_device_specs(self) -> DeviceSpecs:
        try:
            username = getpass.getuser()
        except (KeyError, OSError) as exc:
            raise CapabilityError(f"failed to resolve current user: {exc}") from exc

        return DeviceSpecs(
            hostname=socket.gethostname(),
            username=username,
            user_id=_user_id(),
            os_name=platform.system().lower(),
            os_arch=platform.machine().lower(),
            mac_address=self.identity.mac_address,
            local_ip_address=self._ip_fn(),
            port=self.port,
            fetched_unix=int(self._now_fn()),
        )
