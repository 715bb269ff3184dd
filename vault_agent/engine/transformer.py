"""Backend event → output chunk transformation.

MessageTransformer is purely reactive: each event maps to zero or more
chunks, in block order. The only shared state it writes is the session handle
on SessionState. One transformer serves one call, so "first init
wins" is tracked on the transformer itself. Shell tool invocations are checked against the
CommandPolicy before they are reported; a blocked invocation produces a
BlockedChunk and never a ToolUseChunk.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from .backend_events import (
    AssistantMessage,
    BackendEvent,
    ErrorEvent,
    ResultEvent,
    SystemInit,
    TextBlock,
    ToolInvocation,
    ToolResultEvent,
    ToolUseEvent,
)
from .chunks import (
    BlockedChunk,
    ErrorChunk,
    StreamChunk,
    TextChunk,
    ToolResultChunk,
    ToolUseChunk,
)
from .command_policy import CommandPolicy

logger = logging.getLogger(__name__)

SHELL_TOOL_NAMES: frozenset[str] = frozenset(
    {"Bash", "bash", "run_bash", "run_shell_command"}
)
_COMMAND_KEYS = ("command", "cmd", "script")


@dataclass
class SessionState:
    """Session identity shared by every call of one service."""

    handle: str | None = None


def is_shell_tool(name: str) -> bool:
    return name in SHELL_TOOL_NAMES


def extract_command(tool_input: Mapping[str, Any]) -> str:
    for key in _COMMAND_KEYS:
        value = tool_input.get(key)
        if isinstance(value, str) and value:
            return value
    return ""


class MessageTransformer:
    """Maps one call's BackendEvents to StreamChunks under a command policy."""

    def __init__(self, policy: CommandPolicy) -> None:
        self._policy = policy
        self._captured = False

    @property
    def captured(self) -> bool:
        """True once this call has recorded its session handle."""
        return self._captured

    @property
    def policy(self) -> CommandPolicy:
        return self._policy

    def transform(
        self, event: BackendEvent, session: SessionState,
    ) -> list[StreamChunk]:
        if isinstance(event, SystemInit):
            if event.session_id and not self._captured:
                session.handle = event.session_id
                self._captured = True
                logger.info("Captured backend session %s", event.session_id)
            return []

        if isinstance(event, AssistantMessage):
            chunks: list[StreamChunk] = []
            for block in event.blocks:
                if isinstance(block, TextBlock):
                    chunks.append(TextChunk(content=block.text))
                elif isinstance(block, ToolInvocation):
                    chunks.append(self._route_tool(block))
            return chunks

        if isinstance(event, ToolUseEvent):
            return [self._route_tool(event.invocation)]

        if isinstance(event, ToolResultEvent):
            return [ToolResultChunk(content=event.content)]

        if isinstance(event, ErrorEvent):
            logger.warning("Backend reported error: %s", event.message)
            return [ErrorChunk(content=event.message)]

        if isinstance(event, ResultEvent):
            if event.is_error:
                logger.warning("Backend result reported an error: %s", event.result)
            return []

        return []

    def _route_tool(self, invocation: ToolInvocation) -> StreamChunk:
        if is_shell_tool(invocation.name):
            command = extract_command(invocation.input)
            decision = self._policy.evaluate(command)
            if decision.blocked:
                logger.warning(
                    "Blocked %s command %r (pattern %r)",
                    invocation.name, command[:200], decision.matched_pattern,
                )
                return BlockedChunk(
                    content=f"Command blocked: {command}",
                    pattern=decision.matched_pattern,
                )
        logger.debug(
            "tool_use id=%s name=%s", invocation.id or "-", invocation.name,
        )
        return ToolUseChunk(name=invocation.name, input=dict(invocation.input))
