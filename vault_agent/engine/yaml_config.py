"""YAML configuration loader.

Loads a single YAML file into a ServiceConfig. Environment variables
still work when no YAML is provided (see ServiceConfig.from_env).

Example YAML:
    service:
      vault_path: ~/Documents/Vault
      cli_path: ~/.claude/local/claude
      permission_mode: bypassPermissions
      allowed_tools: [Read, Grep, Glob, Bash]
      model: claude-sonnet-4-5

    settings:
      enable_blocklist: true
      show_tool_use: false
      blocked_commands:
        - rm -rf
        - 'chmod\\s+7{3}'
"""
from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml

from .config import AgentSettings, ServiceConfig

logger = logging.getLogger(__name__)


def _expand(value: object) -> str | None:
    if not isinstance(value, str) or not value.strip():
        return None
    return os.path.expanduser(os.path.expandvars(value.strip()))


def load_yaml_config(path: str | Path) -> ServiceConfig:
    """Load and parse a YAML config file.

    Missing sections fall back to defaults. The ``settings`` section is
    merged over the default settings the same way saved settings are,
    so an empty ``blocked_commands`` key keeps the default blocklist.
    """
    path = Path(path)
    logger.info(
        "load_yaml_config: loading config from %s (exists=%s)",
        path, path.exists(),
    )
    try:
        with open(path, encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.error(
            "load_yaml_config: config file not found at %s (absolute path: %s)",
            path, path.absolute(),
        )
        raise
    except yaml.YAMLError as exc:
        logger.error("load_yaml_config: YAML parse error in %s: %s", path, exc)
        raise

    if not isinstance(raw, dict):
        raise ValueError(f"{path}: top-level YAML must be a mapping")

    service = raw.get("service") or {}
    if not isinstance(service, dict):
        raise ValueError(f"{path}: 'service' must be a mapping")
    settings_raw = raw.get("settings") or {}
    if not isinstance(settings_raw, dict):
        raise ValueError(f"{path}: 'settings' must be a mapping")

    config = ServiceConfig(settings=AgentSettings.from_mapping(settings_raw))
    config.vault_path = _expand(service.get("vault_path"))
    config.cli_path = _expand(service.get("cli_path"))
    if service.get("permission_mode"):
        config.permission_mode = str(service["permission_mode"])
    tools = service.get("allowed_tools")
    if isinstance(tools, list) and tools:
        config.allowed_tools = [str(t) for t in tools]
    if service.get("model"):
        config.model = str(service["model"])
    if service.get("log_level"):
        config.log_level = str(service["log_level"]).upper()

    logger.info(
        "Parsed YAML config %s: vault=%s blocklist=%s patterns=%d",
        path.name,
        config.vault_path or "<unset>",
        config.settings.enable_blocklist,
        len(config.settings.blocked_commands),
    )
    return config
