"""Backend protocol events, narrowed at the ingestion edge.

The backend speaks loosely typed dicts (the Claude Code stream-json
shape). parse_backend_event() turns each one into a closed set of
dataclasses so the transformer never inspects raw dicts. Unrecognised
tags become UnknownEvent instead of failing.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TextBlock:
    text: str = ""


@dataclass(frozen=True)
class ToolInvocation:
    name: str = ""
    input: dict[str, Any] = field(default_factory=dict)
    id: str | None = None


ContentBlock = Union[TextBlock, ToolInvocation]


@dataclass(frozen=True)
class SystemInit:
    """``system``/``init``: carries the backend session handle."""
    session_id: str | None = None


@dataclass(frozen=True)
class AssistantMessage:
    blocks: tuple[ContentBlock, ...] = ()


@dataclass(frozen=True)
class ToolUseEvent:
    """A tool invocation reported outside an assistant message."""
    invocation: ToolInvocation = field(default_factory=ToolInvocation)


@dataclass(frozen=True)
class ToolResultEvent:
    content: Any = ""


@dataclass(frozen=True)
class ResultEvent:
    is_error: bool = False
    result: str | None = None


@dataclass(frozen=True)
class ErrorEvent:
    message: str = ""


@dataclass(frozen=True)
class UnknownEvent:
    raw_type: str | None = None


BackendEvent = Union[
    SystemInit,
    AssistantMessage,
    ToolUseEvent,
    ToolResultEvent,
    ResultEvent,
    ErrorEvent,
    UnknownEvent,
]


def _as_input(value: Any) -> dict[str, Any]:
    if isinstance(value, Mapping):
        return dict(value)
    return {}


def _parse_invocation(raw: Mapping[str, Any]) -> ToolInvocation:
    name = raw.get("name")
    tool_id = raw.get("id")
    return ToolInvocation(
        name=name if isinstance(name, str) else "",
        input=_as_input(raw.get("input")),
        id=tool_id if isinstance(tool_id, str) else None,
    )


def _parse_blocks(content: Any) -> tuple[ContentBlock, ...]:
    if isinstance(content, str):
        return (TextBlock(text=content),) if content else ()
    if not isinstance(content, (list, tuple)):
        return ()
    blocks: list[ContentBlock] = []
    for item in content:
        if not isinstance(item, Mapping):
            continue
        block_type = item.get("type")
        if block_type == "text":
            text = item.get("text")
            blocks.append(TextBlock(text=text if isinstance(text, str) else ""))
        elif block_type == "tool_use":
            blocks.append(_parse_invocation(item))
        # thinking / other block kinds are not surfaced
    return tuple(blocks)


def parse_backend_event(raw: Any) -> BackendEvent:
    """Narrow one raw backend event into a typed BackendEvent."""
    if not isinstance(raw, Mapping):
        logger.debug("Ignoring non-mapping backend event: %r", type(raw).__name__)
        return UnknownEvent(raw_type=None)

    event_type = raw.get("type")

    if event_type == "system":
        if raw.get("subtype") != "init":
            return UnknownEvent(raw_type=f"system/{raw.get('subtype')}")
        session_id = raw.get("session_id")
        return SystemInit(
            session_id=session_id if isinstance(session_id, str) and session_id else None
        )

    if event_type == "assistant":
        message = raw.get("message")
        content = message.get("content") if isinstance(message, Mapping) else None
        return AssistantMessage(blocks=_parse_blocks(content))

    if event_type == "tool_use":
        return ToolUseEvent(invocation=_parse_invocation(raw))

    if event_type == "tool_result":
        return ToolResultEvent(content=raw.get("content", ""))

    if event_type == "result":
        result = raw.get("result")
        return ResultEvent(
            is_error=bool(raw.get("is_error", False)),
            result=result if isinstance(result, str) else None,
        )

    if event_type == "error":
        message = raw.get("message")
        if message is None:
            message = raw.get("error")
        return ErrorEvent(message="" if message is None else str(message))

    return UnknownEvent(raw_type=event_type if isinstance(event_type, str) else None)
