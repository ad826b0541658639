from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Protocol

import requests

from .errors import TransportError


@dataclass(frozen=True)
class GatewayResponse:
    status_code: int
    body: bytes = b""


class Gateway(Protocol):
    """Issues one HTTP request; never retries."""

    def request(self, method: str, url: str, body: bytes | None = None) -> GatewayResponse: ...


class HTTPSession(Protocol):
    def request(
        self,
        method: str,
        url: str,
        *,
        data: bytes | None,
        headers: Mapping[str, str],
        timeout: float,
    ) -> Any: ...


class HttpGateway:
    def __init__(
        self,
        *,
        session: HTTPSession | None = None,
        timeout_s: float = 30.0,
    ) -> None:
        if timeout_s <= 0:
            raise ValueError("timeout_s must be > 0")
        self.session = session if session is not None else requests.Session()
        self.timeout_s = float(timeout_s)

    def request(self, method: str, url: str, body: bytes | None = None) -> GatewayResponse:
        headers = {"Content-Type": "application/json"} if body is not None else {}
        try:
            resp = self.session.request(
                method,
                url,
                data=body,
                headers=headers,
                timeout=self.timeout_s,
            )
        except requests.RequestException as exc:
            raise TransportError(f"{method} {url} failed: {exc}") from exc
        return GatewayResponse(status_code=int(resp.status_code), body=resp.content or b"")

    def close(self) -> None:
        close = getattr(self.session, "close", None)
        if close is not None:
            close()
