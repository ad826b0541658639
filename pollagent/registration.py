from __future__ import annotations

import logging
import time
from typing import Callable

from .capabilities import InformationService
from .errors import RegistrationError, TransportError
from .gateway import Gateway
from .session import ConnectionState, SessionTracker

log = logging.getLogger("pollagent.registration")

HTTP_OK = 200


class RegistrationFlow:
    """Probe the server until it is reachable, then register once.

    Unreachability is retried forever at the tracker's fixed probe interval.
    A registration that reached the server but failed is returned to the
    caller as ``FAILED``; this flow never retries it.
    """

    def __init__(
        self,
        *,
        gateway: Gateway,
        tracker: SessionTracker,
        information: InformationService,
        health_url: str,
        device_url: str,
        sleep_fn: Callable[[float], None] = time.sleep,
    ) -> None:
        self.gateway = gateway
        self.tracker = tracker
        self.information = information
        self.health_url = health_url
        self.device_url = device_url
        self._sleep = sleep_fn
        self.last_error: RegistrationError | None = None
        self.probe_attempts = 0

    def probe(self) -> bool:
        self.probe_attempts += 1
        try:
            resp = self.gateway.request("GET", self.health_url)
        except TransportError as exc:
            log.info("server unreachable: %s", exc)
            return False
        if resp.status_code != HTTP_OK:
            log.info("health check returned %s", resp.status_code)
            return False
        return True

    def register(self) -> None:
        try:
            specs = self.information.load_device_specs()
        except Exception as exc:
            raise RegistrationError(f"failed to load device specs: {exc}") from exc

        try:
            resp = self.gateway.request("POST", self.device_url, specs.to_json())
        except TransportError as exc:
            raise RegistrationError(f"device submission failed: {exc}") from exc
        if resp.status_code != HTTP_OK:
            raise RegistrationError(f"device submission failed with status code {resp.status_code}")

    def run(self, *, max_probes: int | None = None) -> ConnectionState:
        self.tracker.reset()
        self.last_error = None
        probes = 0

        while True:
            probes += 1
            if self.probe():
                break
            if max_probes is not None and probes >= max_probes:
                return self.tracker.state
            self.tracker.transition(ConnectionState.PROBING)
            self._sleep(self.tracker.next_interval_s())

        self.tracker.transition(ConnectionState.REGISTERING)
        try:
            self.register()
        except RegistrationError as exc:
            self.last_error = exc
            self.tracker.transition(ConnectionState.FAILED)
            log.error("registration failed: %s", exc)
            return self.tracker.state

        self.tracker.transition(ConnectionState.REGISTERED)
        log.info("registered with %s", self.device_url)
        return self.tracker.state
