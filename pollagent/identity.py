from __future__ import annotations

import base64
import uuid
from dataclasses import dataclass


def format_mac_address(node: int) -> str:
    """Format a 48-bit node id as ``aa:bb:cc:dd:ee:ff``."""

    if node < 0 or node >= 1 << 48:
        raise ValueError(f"node id out of range: {node}")
    raw = f"{node:012x}"
    return ":".join(raw[i : i + 2] for i in range(0, 12, 2))


@dataclass(frozen=True)
class AgentIdentity:
    """Stable per-process identifier used to correlate every request."""

    mac_address: str

    def __post_init__(self) -> None:
        if not self.mac_address.strip():
            raise ValueError("mac_address must be non-empty")

    @classmethod
    def from_host(cls, *, override: str | None = None) -> AgentIdentity:
        if override and override.strip():
            return cls(mac_address=override.strip().lower())
        return cls(mac_address=format_mac_address(uuid.getnode()))

    def encoded(self) -> str:
        return base64.b64encode(self.mac_address.encode("utf-8")).decode("ascii")
