"""Chat message and tool use models."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable
import uuid

from vault_agent.engine.chunks import (
    BlockedChunk,
    ErrorChunk,
    StreamChunk,
    TextChunk,
    ToolUseChunk,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _gen_id() -> str:
    return str(uuid.uuid4())[:8]


class MessageRole(Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


@dataclass
class ToolUseInfo:
    name: str
    input: dict[str, Any] = field(default_factory=dict)


@dataclass
class ChatMessage:
    role: MessageRole
    content: str
    id: str = field(default_factory=_gen_id)
    timestamp: datetime = field(default_factory=_utcnow)
    tool_use: list[ToolUseInfo] = field(default_factory=list)
    is_error: bool = False

    @classmethod
    def from_chunks(cls, chunks: Iterable[StreamChunk]) -> "ChatMessage":
        """Fold one assistant turn's chunks into a single message.

        Text is concatenated in order; blocked commands and errors are
        kept as their own lines so the transcript shows them.
        """
        parts: list[str] = []
        tools: list[ToolUseInfo] = []
        is_error = False
        for chunk in chunks:
            if isinstance(chunk, TextChunk):
                parts.append(chunk.content)
            elif isinstance(chunk, ToolUseChunk):
                tools.append(ToolUseInfo(name=chunk.name, input=dict(chunk.input)))
            elif isinstance(chunk, (BlockedChunk, ErrorChunk)):
                is_error = is_error or isinstance(chunk, ErrorChunk)
                parts.append(f"\n[{chunk.type}] {chunk.content}\n")
        return cls(
            role=MessageRole.ASSISTANT,
            content="".join(parts).strip(),
            tool_use=tools,
            is_error=is_error,
        )
