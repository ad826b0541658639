from __future__ import annotations

import base64
import json
import threading
from urllib.parse import parse_qs, urlsplit

import pytest

from pollagent.command_loop import CommandLoop, TickOutcome
from pollagent.commands import CommandLine
from pollagent.dispatcher import CommandDispatcher
from pollagent.errors import TransportError
from pollagent.gateway import GatewayResponse
from pollagent.identity import AgentIdentity
from pollagent.session import ConnectionState, SessionTracker

COMMAND_URL = "http://server.local:8080/client"
MAC = "aa:bb:cc:dd:ee:ff"


class _FakeGateway:
    def __init__(self, *, polls: list[object], put_status: object = 200) -> None:
        self.polls = list(polls)
        self.put_status = put_status
        self.gets: list[str] = []
        self.puts: list[dict[str, object]] = []

    def request(self, method: str, url: str, body: bytes | None = None) -> GatewayResponse:
        if method == "GET":
            self.gets.append(url)
            item = self.polls.pop(0) if self.polls else GatewayResponse(204)
            if isinstance(item, Exception):
                raise item
            assert isinstance(item, GatewayResponse)
            return item
        assert method == "PUT"
        assert url == COMMAND_URL
        assert body is not None
        self.puts.append(json.loads(body))
        if isinstance(self.put_status, Exception):
            raise self.put_status
        return GatewayResponse(int(self.put_status))  # type: ignore[arg-type]


class _Recorder:
    def __init__(self, *, payload: bytes = b"", error: Exception | None = None) -> None:
        self.payload = payload
        self.error = error
        self.commands: list[CommandLine] = []

    def execute(self, command: CommandLine) -> bytes:
        self.commands.append(command)
        if self.error is not None:
            raise self.error
        return self.payload


def _poll(text: str) -> GatewayResponse:
    return GatewayResponse(200, json.dumps({"request": text}).encode("utf-8"))


def _connected_tracker() -> SessionTracker:
    tracker = SessionTracker()
    tracker.transition(ConnectionState.REGISTERING)
    tracker.transition(ConnectionState.REGISTERED)
    return tracker


def _loop(
    gateway: _FakeGateway,
    dispatcher: CommandDispatcher,
    *,
    tracker: SessionTracker | None = None,
    sleeps: list[float] | None = None,
) -> CommandLoop:
    record = sleeps if sleeps is not None else []
    return CommandLoop(
        gateway=gateway,
        tracker=tracker or _connected_tracker(),
        dispatcher=dispatcher,
        identity=AgentIdentity(mac_address=MAC),
        command_url=COMMAND_URL,
        poll_interval_s=2.0,
        sleep_fn=record.append,
    )


def test_poll_url_carries_base64_identity() -> None:
    gateway = _FakeGateway(polls=[GatewayResponse(204)])
    loop = _loop(gateway, CommandDispatcher())

    assert loop.tick() is TickOutcome.IDLE
    query = parse_qs(urlsplit(gateway.gets[0]).query)
    assert base64.b64decode(query["address"][0]).decode("utf-8") == MAC


def test_restart_success_reports_empty_payload() -> None:
    restart = _Recorder()
    gateway = _FakeGateway(polls=[_poll("restart")])
    loop = _loop(gateway, CommandDispatcher({"restart": restart}))

    assert loop.tick() is TickOutcome.REPORTED
    assert gateway.puts == [{"macAddress": MAC, "response": "", "hasError": False}]
    assert len(restart.commands) == 1


def test_explore_failure_reports_error_text() -> None:
    explore = _Recorder(error=FileNotFoundError("path not found"))
    gateway = _FakeGateway(polls=[_poll("explore /nonexistent")])
    loop = _loop(gateway, CommandDispatcher({"explore": explore}))

    assert loop.tick() is TickOutcome.REPORTED
    (report,) = gateway.puts
    assert report["hasError"] is True
    assert base64.b64decode(str(report["response"])) == b"path not found"
    assert explore.commands[0].args == ("/nonexistent",)


@pytest.mark.parametrize("text", ["", " ", "\t\n  "])
def test_empty_command_never_reports(text: str) -> None:
    fallback = _Recorder()
    gateway = _FakeGateway(polls=[_poll(text)])
    loop = _loop(gateway, CommandDispatcher(fallback=fallback))

    assert loop.tick() is TickOutcome.IDLE
    assert gateway.puts == []
    assert fallback.commands == []


def test_no_content_skips_dispatch_and_report() -> None:
    fallback = _Recorder()
    gateway = _FakeGateway(polls=[GatewayResponse(204), _poll("whoami")])
    sleeps: list[float] = []
    loop = _loop(gateway, CommandDispatcher(fallback=fallback), sleeps=sleeps)

    assert loop.run(max_ticks=2) == 2
    assert sleeps == [2.0, 2.0]
    assert len(gateway.gets) == 2
    assert [c.raw for c in fallback.commands] == ["whoami"]
    assert len(gateway.puts) == 1


@pytest.mark.parametrize(
    "poll",
    [TransportError("timeout"), GatewayResponse(500), GatewayResponse(200, b"<html>"), GatewayResponse(200, b"")],
)
def test_poll_failure_skips_tick(poll: object) -> None:
    fallback = _Recorder()
    gateway = _FakeGateway(polls=[poll])
    loop = _loop(gateway, CommandDispatcher(fallback=fallback))

    assert loop.tick() is TickOutcome.POLL_FAILED
    assert fallback.commands == []
    assert gateway.puts == []
    assert loop.tracker.in_flight is False


@pytest.mark.parametrize("put_status", [500, TransportError("broken pipe")])
def test_report_failure_is_dropped_and_keeps_connection(put_status: object) -> None:
    gateway = _FakeGateway(polls=[_poll("lock"), _poll("lock")], put_status=put_status)
    lock = _Recorder()
    loop = _loop(gateway, CommandDispatcher({"lock": lock}))

    assert loop.tick() is TickOutcome.REPORT_FAILED
    assert loop.tracker.connected is True
    assert len(gateway.puts) == 1
    assert loop.tick() is TickOutcome.REPORT_FAILED
    assert len(lock.commands) == 2
    assert len(gateway.puts) == 2


def test_disconnected_session_does_not_poll() -> None:
    gateway = _FakeGateway(polls=[_poll("getos")])
    loop = _loop(gateway, CommandDispatcher(), tracker=SessionTracker())

    assert loop.tick() is TickOutcome.SKIPPED_DISCONNECTED
    assert gateway.gets == []


def test_in_flight_covers_dispatch_and_blocks_overlap() -> None:
    observed: list[tuple[bool, TickOutcome]] = []
    holder: dict[str, CommandLoop] = {}

    class _Slow:
        def execute(self, command: CommandLine) -> bytes:
            loop = holder["loop"]
            observed.append((loop.tracker.in_flight, loop.tick()))
            return b"done"

    gateway = _FakeGateway(polls=[_poll("slow")])
    loop = _loop(gateway, CommandDispatcher({"slow": _Slow()}))
    holder["loop"] = loop

    assert loop.tracker.in_flight is False
    assert loop.tick() is TickOutcome.REPORTED
    assert observed == [(True, TickOutcome.SKIPPED_BUSY)]
    assert loop.tracker.in_flight is False
    assert len(gateway.gets) == 1


def test_guard_released_when_step_raises_unexpectedly() -> None:
    class _ExplodingGateway(_FakeGateway):
        def request(self, method: str, url: str, body: bytes | None = None) -> GatewayResponse:
            if method == "PUT":
                raise ValueError("unexpected")
            return super().request(method, url, body)

    gateway = _ExplodingGateway(polls=[_poll("x"), _poll("x")])
    loop = _loop(gateway, CommandDispatcher(fallback=_Recorder()))

    with pytest.raises(ValueError):
        loop.tick()
    assert loop.tracker.in_flight is False

    # run() logs and keeps ticking.
    assert loop.run(max_ticks=1) == 1
    assert loop.tracker.in_flight is False


def test_run_stops_when_event_is_set() -> None:
    stop = threading.Event()
    gateway = _FakeGateway(polls=[])
    sleeps: list[float] = []

    def _sleep(seconds: float) -> None:
        sleeps.append(seconds)
        if len(sleeps) == 3:
            stop.set()

    loop = CommandLoop(
        gateway=gateway,
        tracker=_connected_tracker(),
        dispatcher=CommandDispatcher(),
        identity=AgentIdentity(mac_address=MAC),
        command_url=COMMAND_URL,
        sleep_fn=_sleep,
    )
    assert loop.run(stop_event=stop) == 2
    assert len(gateway.gets) == 2


def test_concurrent_tick_from_another_thread_is_refused() -> None:
    started = threading.Event()
    release = threading.Event()

    class _Blocking:
        def __init__(self) -> None:
            self.calls = 0

        def execute(self, command: CommandLine) -> bytes:
            self.calls += 1
            started.set()
            assert release.wait(timeout=5.0)
            return b"done"

    blocking = _Blocking()
    gateway = _FakeGateway(polls=[_poll("slow"), _poll("slow")])
    loop = _loop(gateway, CommandDispatcher({"slow": blocking}))

    outcomes: list[TickOutcome] = []
    worker = threading.Thread(target=lambda: outcomes.append(loop.tick()))
    worker.start()
    try:
        assert started.wait(timeout=5.0)
        assert loop.tracker.in_flight is True
        assert loop.tick() is TickOutcome.SKIPPED_BUSY
    finally:
        release.set()
        worker.join(timeout=5.0)

    assert outcomes == [TickOutcome.REPORTED]
    assert blocking.calls == 1
    assert len(gateway.gets) == 1
    assert len(gateway.puts) == 1
    assert loop.tracker.in_flight is False
