"""Locating the Claude Code executable and the vault root."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Callable, Sequence, Union

from .errors import ClaudeCLINotFoundError, VaultPathUnavailableError

logger = logging.getLogger(__name__)

CLI_PATH_ENV = "VAULT_AGENT_CLAUDE_CLI_PATH"

VaultPathSource = Union[str, Path, Callable[[], Union[str, Path, None]], None]


def default_cli_candidates() -> list[str]:
    """Well-known Claude Code install locations, in search order."""
    home = Path.home()
    return [
        str(home / ".claude" / "local" / "claude"),
        str(home / ".local" / "bin" / "claude"),
        "/usr/local/bin/claude",
        "/opt/homebrew/bin/claude",
        str(home / ".npm-global" / "bin" / "claude"),
    ]


class ClaudeCLILocator:
    """Finds the first existing Claude CLI among the candidate paths.

    An explicit path (argument or VAULT_AGENT_CLAUDE_CLI_PATH) is tried
    first. ``exists`` is injectable so callers can search a fake
    filesystem.
    """

    def __init__(
        self,
        explicit_path: str | None = None,
        candidates: Sequence[str] | None = None,
        exists: Callable[[str], bool] = os.path.exists,
    ) -> None:
        self._explicit_path = explicit_path
        self._candidates = list(candidates) if candidates is not None else None
        self._exists = exists

    def search_paths(self) -> list[str]:
        paths: list[str] = []
        explicit = self._explicit_path or os.getenv(CLI_PATH_ENV, "").strip()
        if explicit:
            paths.append(os.path.expanduser(explicit))
        if self._candidates is not None:
            paths.extend(self._candidates)
        else:
            paths.extend(default_cli_candidates())
        return paths

    def find(self) -> str | None:
        for path in self.search_paths():
            if self._exists(path):
                logger.debug("Found Claude CLI at %s", path)
                return path
        return None

    def require(self) -> str:
        """Return the CLI path or raise ClaudeCLINotFoundError."""
        path = self.find()
        if path is None:
            searched = self.search_paths()
            logger.error("Claude CLI not found (searched %d paths)", len(searched))
            raise ClaudeCLINotFoundError(searched)
        return path


def resolve_vault_path(source: VaultPathSource) -> str:
    """Resolve the working directory from a path or a zero-arg provider."""
    value = source() if callable(source) else source
    if value is None:
        raise VaultPathUnavailableError("no vault path configured")
    text = str(value).strip()
    if not text:
        raise VaultPathUnavailableError("vault path is empty")
    return os.path.expanduser(text)
