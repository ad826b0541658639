from __future__ import annotations

import threading
from contextlib import contextmanager
from enum import Enum
from typing import Iterator

from .errors import CommandBusyError


class ConnectionState(str, Enum):
    PROBING = "probing"
    REGISTERING = "registering"
    REGISTERED = "registered"
    FAILED = "failed"


_TRANSITIONS: dict[ConnectionState, frozenset[ConnectionState]] = {
    ConnectionState.PROBING: frozenset({ConnectionState.PROBING, ConnectionState.REGISTERING}),
    ConnectionState.REGISTERING: frozenset({ConnectionState.REGISTERED, ConnectionState.FAILED}),
    ConnectionState.REGISTERED: frozenset({ConnectionState.PROBING}),
    ConnectionState.FAILED: frozenset({ConnectionState.PROBING}),
}


class InFlightGuard:
    """In-process mutex covering one poll-dispatch-report sequence."""

    def __init__(self) -> None:
        self._lock = threading.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    @contextmanager
    def hold(self) -> Iterator[None]:
        if not self._lock.acquire(blocking=False):
            raise CommandBusyError("a command is already in flight")
        try:
            yield
        finally:
            self._lock.release()


class SessionTracker:
    """Owns the connection state machine and the in-flight guard.

    ``connected`` is derived from the state, so a session can never be
    connected while probing or after a failed registration.
    """

    def __init__(
        self,
        *,
        probe_interval_s: float = 5.0,
        reprobe_interval_s: float = 20.0,
        guard: InFlightGuard | None = None,
    ) -> None:
        if probe_interval_s <= 0:
            raise ValueError("probe_interval_s must be > 0")
        if reprobe_interval_s <= 0:
            raise ValueError("reprobe_interval_s must be > 0")
        self.probe_interval_s = float(probe_interval_s)
        self.reprobe_interval_s = float(reprobe_interval_s)
        self.guard = guard or InFlightGuard()
        self._state = ConnectionState.PROBING

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def connected(self) -> bool:
        return self._state is ConnectionState.REGISTERED

    @property
    def in_flight(self) -> bool:
        return self.guard.busy

    def transition(self, target: ConnectionState) -> None:
        allowed = _TRANSITIONS[self._state]
        if target not in allowed:
            raise ValueError(f"illegal session transition {self._state.value} -> {target.value}")
        self._state = target

    def reset(self) -> None:
        """Return to probing before a new registration attempt."""
        if self._state is not ConnectionState.PROBING:
            self.transition(ConnectionState.PROBING)

    def next_interval_s(self) -> float:
        # Fixed cadence while unreachable; the longer wait only applies
        # between registration attempts that reached the server.
        if self._state is ConnectionState.FAILED:
            return self.reprobe_interval_s
        return self.probe_interval_s
