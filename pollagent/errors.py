from __future__ import annotations


class PollAgentError(RuntimeError):
    """Base class for agent runtime failures."""


class AgentConfigError(ValueError):
    """Invalid agent configuration."""


class TransportError(PollAgentError):
    """Raised when an HTTP request could not be completed."""


class RegistrationError(PollAgentError):
    """Raised when device specs could not be loaded or submitted."""


class PollError(PollAgentError):
    """Raised when the command endpoint answers with an unexpected status."""


class ProtocolError(PollAgentError):
    """Raised when a server response body does not match the wire contract."""


class ReportDeliveryError(PollAgentError):
    """Raised when a command report was not acknowledged."""


class CommandBusyError(PollAgentError):
    """Raised when another command is already in flight."""


class CapabilityError(PollAgentError):
    """Raised by a capability when the requested action fails."""


class CommandArgumentError(CapabilityError):
    """Raised when a command is missing a required argument."""


class CapabilityUnavailableError(CapabilityError):
    """Raised when no service is installed for a verb."""
