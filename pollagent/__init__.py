from .command_loop import CommandLoop, TickOutcome
from .commands import CommandLine, parse_command
from .config import AgentConfig, load_agent_config_from_env
from .dispatcher import CommandDispatcher, build_dispatcher
from .identity import AgentIdentity
from .protocol import CommandRequest, CommandResult, DeviceSpecs, OutboundReport
from .registration import RegistrationFlow
from .session import ConnectionState, InFlightGuard, SessionTracker

__all__ = [
    "AgentConfig",
    "AgentIdentity",
    "CommandDispatcher",
    "CommandLine",
    "CommandLoop",
    "CommandRequest",
    "CommandResult",
    "ConnectionState",
    "DeviceSpecs",
    "InFlightGuard",
    "OutboundReport",
    "RegistrationFlow",
    "SessionTracker",
    "TickOutcome",
    "build_dispatcher",
    "load_agent_config_from_env",
    "parse_command",
]
