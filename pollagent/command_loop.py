from __future__ import annotations

import logging
import threading
import time
from enum import Enum
from typing import Callable
from urllib.parse import urlencode

from .dispatcher import CommandDispatcher
from .errors import CommandBusyError, PollAgentError, PollError, ReportDeliveryError, TransportError
from .gateway import Gateway
from .identity import AgentIdentity
from .protocol import CommandRequest, CommandResult, OutboundReport, parse_command_request
from .session import SessionTracker

log = logging.getLogger("pollagent.command_loop")

HTTP_OK = 200
HTTP_NO_CONTENT = 204


class TickOutcome(str, Enum):
    SKIPPED_DISCONNECTED = "skipped_disconnected"
    SKIPPED_BUSY = "skipped_busy"
    POLL_FAILED = "poll_failed"
    IDLE = "idle"
    REPORTED = "reported"
    REPORT_FAILED = "report_failed"


class CommandLoop:
    def __init__(
        self,
        *,
        gateway: Gateway,
        tracker: SessionTracker,
        dispatcher: CommandDispatcher,
        identity: AgentIdentity,
        command_url: str,
        poll_interval_s: float = 2.0,
        sleep_fn: Callable[[float], None] = time.sleep,
    ) -> None:
        if poll_interval_s <= 0:
            raise ValueError("poll_interval_s must be > 0")
        self.gateway = gateway
        self.tracker = tracker
        self.dispatcher = dispatcher
        self.identity = identity
        self.command_url = command_url
        self.poll_interval_s = float(poll_interval_s)
        self._sleep = sleep_fn

    def poll_url(self) -> str:
        return f"{self.command_url}?{urlencode({'address': self.identity.encoded()})}"

    def poll(self) -> CommandRequest:
        resp = self.gateway.request("GET", self.poll_url())
        if resp.status_code == HTTP_NO_CONTENT:
            return CommandRequest()
        if resp.status_code != HTTP_OK:
            raise PollError(f"command poll failed with status code {resp.status_code}")
        return parse_command_request(resp.body)

    def report(self, result: CommandResult) -> None:
        report = OutboundReport.from_result(mac_address=self.identity.mac_address, result=result)
        try:
            resp = self.gateway.request("PUT", self.command_url, report.to_json())
        except TransportError as exc:
            raise ReportDeliveryError(str(exc)) from exc
        if resp.status_code != HTTP_OK:
            raise ReportDeliveryError(f"report rejected with status code {resp.status_code}")

    def tick(self) -> TickOutcome:
        if not self.tracker.connected:
            return TickOutcome.SKIPPED_DISCONNECTED
        try:
            with self.tracker.guard.hold():
                return self._step()
        except CommandBusyError:
            return TickOutcome.SKIPPED_BUSY

    def _step(self) -> TickOutcome:
        try:
            request = self.poll()
        except PollAgentError as exc:
            log.warning("poll failed: %s", exc)
            return TickOutcome.POLL_FAILED
        if request.is_empty:
            return TickOutcome.IDLE

        result = self.dispatcher.dispatch(request.request)

        try:
            self.report(result)
        except ReportDeliveryError as exc:
            # At-most-once delivery: the result is dropped.
            log.warning("report delivery failed: %s", exc)
            return TickOutcome.REPORT_FAILED
        log.info(
            "reported command",
            extra={"fields": {"bytes": len(result.payload), "has_error": result.has_error}},
        )
        return TickOutcome.REPORTED

    def run(self, *, stop_event: threading.Event | None = None, max_ticks: int | None = None) -> int:
        """Tick every ``poll_interval_s`` until stopped. Returns the tick count."""

        ticks = 0
        while max_ticks is None or ticks < max_ticks:
            self._sleep(self.poll_interval_s)
            if stop_event is not None and stop_event.is_set():
                break
            try:
                self.tick()
            except Exception:
                log.exception("unexpected error during command tick")
            ticks += 1
        return ticks
