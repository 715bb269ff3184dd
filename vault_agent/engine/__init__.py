"""Vault Agent: policed, typed streaming over the Claude Agent SDK."""
from .chunks import (
    BlockedChunk,
    DoneChunk,
    ErrorChunk,
    StreamChunk,
    TextChunk,
    ToolResultChunk,
    ToolUseChunk,
    chunk_to_dict,
)
from .command_policy import CommandPolicy, PolicyDecision, evaluate
from .config import DEFAULT_BLOCKED_COMMANDS, AgentSettings, ServiceConfig
from .errors import (
    AgentServiceError,
    BackendUnavailableError,
    ClaudeCLINotFoundError,
    PreconditionError,
    ServiceClosedError,
    VaultPathUnavailableError,
)
from .service import AgentService, QueryStream

__all__ = [
    # Service
    "AgentService",
    "QueryStream",
    # Chunks
    "StreamChunk",
    "TextChunk",
    "ToolUseChunk",
    "ToolResultChunk",
    "BlockedChunk",
    "ErrorChunk",
    "DoneChunk",
    "chunk_to_dict",
    # Policy
    "CommandPolicy",
    "PolicyDecision",
    "evaluate",
    # Config
    "AgentSettings",
    "ServiceConfig",
    "DEFAULT_BLOCKED_COMMANDS",
    # YAML config (lazy import)
    "load_yaml_config",
    # Errors
    "AgentServiceError",
    "PreconditionError",
    "VaultPathUnavailableError",
    "ClaudeCLINotFoundError",
    "BackendUnavailableError",
    "ServiceClosedError",
]


def __getattr__(name: str):
    if name == "load_yaml_config":
        from .yaml_config import load_yaml_config
        return load_yaml_config
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
