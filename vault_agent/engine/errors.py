"""Exception hierarchy for the agent service.

Expected failures (missing vault path, missing CLI, backend errors)
are converted into error chunks by AgentService.query() and never
cross the caller boundary. Only contract violations raise.
"""
from __future__ import annotations


class AgentServiceError(Exception):
    """Base exception for all agent service errors."""


class PreconditionError(AgentServiceError):
    """A query could not start because the environment is incomplete."""


class VaultPathUnavailableError(PreconditionError):
    """The working directory (vault root) could not be determined."""
    def __init__(self, reason: str = ""):
        self.reason = reason
        message = "Could not determine vault path"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ClaudeCLINotFoundError(PreconditionError):
    """No Claude Code executable exists at any known install location."""
    def __init__(self, searched: list[str]):
        self.searched = searched
        super().__init__(
            "Claude CLI not found. Please install Claude Code CLI "
            "(searched: " + (", ".join(searched) or "none") + ")"
        )


class BackendUnavailableError(AgentServiceError):
    """The backend runtime (claude_agent_sdk) cannot be loaded."""
    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Claude backend unavailable: {reason}")


class ServiceClosedError(AgentServiceError):
    """query() was called on a service that has been closed."""
    def __init__(self) -> None:
        super().__init__("Agent service has been closed")
