from __future__ import annotations

import logging
from typing import Mapping

from .capabilities import (
    Capability,
    DeleteCapability,
    DownloadCapability,
    ExploreCapability,
    GetOSCapability,
    OpenURLCapability,
    PowerCapability,
    ScreenshotCapability,
    Services,
    TerminalCapability,
    UnavailableCapability,
    UploadCapability,
)
from .commands import CommandLine, parse_command
from .protocol import CommandResult

log = logging.getLogger("pollagent.dispatcher")

POWER_VERBS = ("restart", "shutdown", "lock", "sign-out")


class CommandDispatcher:
    """Routes a verb to its capability and applies the error contract.

    Every capability failure, including a missing argument, becomes an
    error-flagged ``CommandResult`` whose payload is the error text.
    """

    def __init__(
        self,
        capabilities: Mapping[str, Capability] | None = None,
        *,
        fallback: Capability | None = None,
    ) -> None:
        self._capabilities: dict[str, Capability] = {}
        for verb, capability in (capabilities or {}).items():
            self.register(verb, capability)
        self.fallback = fallback if fallback is not None else UnavailableCapability("command execution")

    @property
    def verbs(self) -> frozenset[str]:
        return frozenset(self._capabilities)

    def register(self, verb: str, capability: Capability) -> None:
        key = verb.strip().lower()
        if not key or " " in key:
            raise ValueError(f"invalid verb {verb!r}")
        self._capabilities[key] = capability

    def resolve(self, command: CommandLine) -> Capability:
        return self._capabilities.get(command.verb, self.fallback)

    def dispatch(self, text: str) -> CommandResult:
        command = parse_command(text)
        capability = self.resolve(command)
        try:
            payload = capability.execute(command)
        except Exception as exc:
            log.warning("command '%s' failed: %s: %s", command.verb, type(exc).__name__, exc)
            return CommandResult.failure(exc)
        return CommandResult.ok(payload)


def build_dispatcher(services: Services, *, command_deadline_s: float) -> CommandDispatcher:
    dispatcher = CommandDispatcher()
    dispatcher.register("getos", GetOSCapability(services.information))

    for verb in POWER_VERBS:
        if services.os is not None:
            dispatcher.register(verb, PowerCapability.for_verb(services.os, verb))
        else:
            dispatcher.register(verb, UnavailableCapability(verb))

    optional: dict[str, Capability | None] = {
        "screenshot": ScreenshotCapability(services.screenshot) if services.screenshot is not None else None,
        "explore": ExploreCapability(services.explorer) if services.explorer is not None else None,
        "download": DownloadCapability(services.upload) if services.upload is not None else None,
        "delete": DeleteCapability(services.delete) if services.delete is not None else None,
        "upload": UploadCapability(services.download) if services.download is not None else None,
        "open-url": OpenURLCapability(services.url) if services.url is not None else None,
    }
    for verb, capability in optional.items():
        dispatcher.register(verb, capability if capability is not None else UnavailableCapability(verb))

    if services.terminal is not None:
        dispatcher.fallback = TerminalCapability(services.terminal, deadline_s=command_deadline_s)
    return dispatcher
