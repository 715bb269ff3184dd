"""Configuration loaded from environment variables.

AgentSettings holds the user-facing policy settings (blocklist and
tool display). ServiceConfig wraps them together with the backend
options. All settings have sensible defaults. Override via
VAULT_AGENT_* env vars or a YAML file (see yaml_config).
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields
from typing import Any, Mapping

logger = logging.getLogger(__name__)


DEFAULT_BLOCKED_COMMANDS: tuple[str, ...] = (
    "rm -rf",
    "rm -r /",
    "chmod 777",
    "chmod -R 777",
    "mkfs",
    "dd if=",
    "> /dev/sd",
)

DEFAULT_ALLOWED_TOOLS: tuple[str, ...] = (
    "Read", "Write", "Edit", "Bash", "Glob", "Grep", "LS",
)

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    logger.warning("Ignoring invalid boolean %s=%r", name, raw)
    return default


def _split_patterns(raw: str) -> list[str]:
    """Split an env-provided pattern list on newlines or ';;'."""
    parts: list[str] = []
    for line in raw.replace(";;", "\n").splitlines():
        entry = line.strip()
        if entry:
            parts.append(entry)
    return parts


@dataclass
class AgentSettings:
    """Policy settings consumed by the agent service.

    Attributes:
        enable_blocklist: When False, shell commands are never blocked.
        blocked_commands: Ordered patterns. Each is tried as a regular
            expression and falls back to a literal substring when it
            does not compile.
        show_tool_use: Presentation hint for the view layer. The service
            accepts it but never changes what it yields because of it.
    """

    enable_blocklist: bool = True
    blocked_commands: list[str] = field(
        default_factory=lambda: list(DEFAULT_BLOCKED_COMMANDS)
    )
    show_tool_use: bool = True

    def validate(self) -> None:
        """Coerce values back into their expected types."""
        if not isinstance(self.enable_blocklist, bool):
            self.enable_blocklist = True
        if not isinstance(self.show_tool_use, bool):
            self.show_tool_use = True
        if isinstance(self.blocked_commands, (list, tuple)):
            self.blocked_commands = [
                p for p in self.blocked_commands if isinstance(p, str)
            ]
        else:
            self.blocked_commands = list(DEFAULT_BLOCKED_COMMANDS)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> AgentSettings:
        """Merge saved settings over the defaults.

        Unknown keys are ignored and ``None`` values keep the default,
        so partially saved data never drops the default blocklist.
        """
        settings = cls()
        if not data:
            return settings
        known = {f.name for f in fields(cls)}
        for key, value in data.items():
            if key in known and value is not None:
                setattr(settings, key, value)
        settings.validate()
        return settings


@dataclass
class ServiceConfig:
    """Agent service configuration."""

    # Vault root used as the backend working directory
    vault_path: str | None = None
    # Explicit Claude CLI path; searched before the well-known locations
    cli_path: str | None = None

    # Passed straight through to the backend
    permission_mode: str = "bypassPermissions"
    allowed_tools: list[str] = field(
        default_factory=lambda: list(DEFAULT_ALLOWED_TOOLS)
    )
    model: str | None = None

    # Logging
    log_level: str = "INFO"

    settings: AgentSettings = field(default_factory=AgentSettings)

    @classmethod
    def from_env(cls) -> ServiceConfig:
        """Load configuration from VAULT_AGENT_* environment variables."""
        agent_vars = {
            k: v for k, v in os.environ.items() if k.startswith("VAULT_AGENT_")
        }
        if agent_vars:
            logger.info(
                "ServiceConfig.from_env: VAULT_AGENT_* env overrides: %s",
                ", ".join(sorted(agent_vars)),
            )
        else:
            logger.debug("ServiceConfig.from_env: no VAULT_AGENT_* env vars set, using defaults")

        defaults = AgentSettings()
        raw_blocked = os.getenv("VAULT_AGENT_BLOCKED_COMMANDS")
        settings = AgentSettings(
            enable_blocklist=_env_bool(
                "VAULT_AGENT_ENABLE_BLOCKLIST", defaults.enable_blocklist
            ),
            blocked_commands=(
                _split_patterns(raw_blocked)
                if raw_blocked is not None
                else defaults.blocked_commands
            ),
            show_tool_use=_env_bool(
                "VAULT_AGENT_SHOW_TOOL_USE", defaults.show_tool_use
            ),
        )

        raw_tools = os.getenv("VAULT_AGENT_ALLOWED_TOOLS", "")
        allowed_tools = [t.strip() for t in raw_tools.split(",") if t.strip()]

        config = cls(
            vault_path=os.getenv("VAULT_AGENT_VAULT_PATH") or None,
            cli_path=os.getenv("VAULT_AGENT_CLAUDE_CLI_PATH") or None,
            permission_mode=os.getenv(
                "VAULT_AGENT_PERMISSION_MODE", cls.permission_mode
            ),
            allowed_tools=allowed_tools or list(DEFAULT_ALLOWED_TOOLS),
            model=os.getenv("VAULT_AGENT_MODEL") or None,
            log_level=os.getenv("VAULT_AGENT_LOG_LEVEL", cls.log_level),
            settings=settings,
        )
        logger.info(
            "ServiceConfig.from_env: vault=%s mode=%s blocklist=%s patterns=%d",
            config.vault_path or "<unset>",
            config.permission_mode,
            config.settings.enable_blocklist,
            len(config.settings.blocked_commands),
        )
        return config
