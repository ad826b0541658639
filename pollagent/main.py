from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

from dotenv import load_dotenv

from .capabilities import HostInformationService, Services
from .command_loop import CommandLoop
from .config import AgentConfig, load_agent_config_from_env
from .dispatcher import CommandDispatcher, build_dispatcher
from .errors import AgentConfigError
from .gateway import Gateway, HttpGateway
from .identity import AgentIdentity
from .observability import configure_logging
from .registration import RegistrationFlow
from .session import ConnectionState, SessionTracker

log = logging.getLogger("pollagent")


@dataclass
class Agent:
    config: AgentConfig
    identity: AgentIdentity
    tracker: SessionTracker
    dispatcher: CommandDispatcher
    registration: RegistrationFlow
    loop: CommandLoop
    gateway: Gateway


def build_agent(
    config: AgentConfig,
    *,
    identity: AgentIdentity | None = None,
    gateway: Gateway | None = None,
    services: Services | None = None,
    sleep_fn: Callable[[float], None] = time.sleep,
) -> Agent:
    identity = identity or AgentIdentity.from_host(override=config.mac_address)
    gateway = gateway or HttpGateway(timeout_s=config.request_timeout_s)
    services = services or Services(information=HostInformationService(identity=identity))

    tracker = SessionTracker(
        probe_interval_s=config.probe_interval_s,
        reprobe_interval_s=config.reprobe_interval_s,
    )
    dispatcher = build_dispatcher(services, command_deadline_s=config.command_deadline_s)
    registration = RegistrationFlow(
        gateway=gateway,
        tracker=tracker,
        information=services.information,
        health_url=config.health_url,
        device_url=config.device_url,
        sleep_fn=sleep_fn,
    )
    loop = CommandLoop(
        gateway=gateway,
        tracker=tracker,
        dispatcher=dispatcher,
        identity=identity,
        command_url=config.command_url,
        poll_interval_s=config.poll_interval_s,
        sleep_fn=sleep_fn,
    )
    return Agent(
        config=config,
        identity=identity,
        tracker=tracker,
        dispatcher=dispatcher,
        registration=registration,
        loop=loop,
        gateway=gateway,
    )


def connect(
    agent: Agent,
    *,
    sleep_fn: Callable[[float], None] = time.sleep,
    max_attempts: int | None = None,
) -> bool:
    """Run registration until it succeeds, or once when re-probing is disabled."""

    attempts = 0
    while True:
        attempts += 1
        state = agent.registration.run()
        if state is ConnectionState.REGISTERED:
            return True
        if not agent.config.reprobe_on_failure:
            return False
        if max_attempts is not None and attempts >= max_attempts:
            return False
        log.info("re-probing in %.0fs", agent.tracker.next_interval_s())
        sleep_fn(agent.tracker.next_interval_s())


def run_agent(
    agent: Agent,
    *,
    stop_event: threading.Event | None = None,
    sleep_fn: Callable[[float], None] = time.sleep,
) -> int:
    try:
        if not connect(agent, sleep_fn=sleep_fn):
            log.error("registration failed and re-probing is disabled; exiting")
            return 1
        agent.loop.run(stop_event=stop_event)
        return 0
    finally:
        close = getattr(agent.gateway, "close", None)
        if close is not None:
            close()


def main() -> None:
    load_dotenv()

    try:
        config = load_agent_config_from_env()
    except AgentConfigError as exc:
        raise SystemExit(f"[pollagent] invalid config: {exc}") from exc

    identity = AgentIdentity.from_host(override=config.mac_address)
    configure_logging(level=config.log_level, log_format=config.log_format, mac_address=identity.mac_address)

    agent = build_agent(config, identity=identity)
    log.info(
        "mac_address=%s server=%s poll=%ss probe=%ss reprobe_on_failure=%s",
        identity.mac_address,
        config.server_url,
        config.poll_interval_s,
        config.probe_interval_s,
        config.reprobe_on_failure,
    )

    try:
        code = run_agent(agent)
    except KeyboardInterrupt:
        log.info("interrupted; shutting down")
        code = 0
    raise SystemExit(code)


if __name__ == "__main__":
    main()
