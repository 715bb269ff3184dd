"""Typed output chunks yielded by AgentService.query().

Each chunk is an immutable dataclass tagged by ``type``. The view
layer dispatches on ``type``; chunk_to_dict() gives the plain-dict
form for JSON output.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class StreamChunk:
    """Base unit of the typed output stream."""
    type: str = ""


@dataclass(frozen=True)
class TextChunk(StreamChunk):
    type: str = "text"
    content: str = ""


@dataclass(frozen=True)
class ToolUseChunk(StreamChunk):
    type: str = "tool_use"
    name: str = ""
    input: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ToolResultChunk(StreamChunk):
    type: str = "tool_result"
    content: Any = ""


@dataclass(frozen=True)
class BlockedChunk(StreamChunk):
    """A shell invocation stopped by the blocklist."""
    type: str = "blocked"
    content: str = ""
    pattern: str | None = None


@dataclass(frozen=True)
class ErrorChunk(StreamChunk):
    type: str = "error"
    content: str = ""


@dataclass(frozen=True)
class DoneChunk(StreamChunk):
    type: str = "done"


def chunk_to_dict(chunk: StreamChunk) -> dict[str, Any]:
    """Convert a chunk to a plain dict, dropping unset optional fields."""
    d: dict[str, Any] = {}
    for name in chunk.__dataclass_fields__:
        val = getattr(chunk, name)
        if val is not None:
            d[name] = val
    return d
