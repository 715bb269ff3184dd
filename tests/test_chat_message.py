from __future__ import annotations

from vault_agent.engine.chunks import (
    BlockedChunk,
    DoneChunk,
    ErrorChunk,
    TextChunk,
    ToolResultChunk,
    ToolUseChunk,
)
from vault_agent.shared.models.message import ChatMessage, MessageRole, ToolUseInfo


def test_from_chunks_concatenates_text_and_collects_tools() -> None:
    message = ChatMessage.from_chunks([
        TextChunk(content="Reading "),
        ToolUseChunk(name="Read", input={"file_path": "todo.md"}),
        ToolResultChunk(content="- [ ] call mum"),
        TextChunk(content="done."),
        DoneChunk(),
    ])
    assert message.role == MessageRole.ASSISTANT
    assert message.content == "Reading done."
    assert message.tool_use == [ToolUseInfo(name="Read", input={"file_path": "todo.md"})]
    assert message.is_error is False


def test_blocked_and_error_chunks_are_kept_as_lines() -> None:
    message = ChatMessage.from_chunks([
        TextChunk(content="Trying."),
        BlockedChunk(content="Command blocked: mkfs /dev/sda", pattern="mkfs"),
        ErrorChunk(content="Claude CLI not found"),
    ])
    assert message.content.splitlines() == [
        "Trying.",
        "[blocked] Command blocked: mkfs /dev/sda",
        "",
        "[error] Claude CLI not found",
    ]
    assert message.is_error is True


def test_blocked_alone_is_not_an_error() -> None:
    message = ChatMessage.from_chunks([BlockedChunk(content="Command blocked: rm -rf /")])
    assert message.content == "[blocked] Command blocked: rm -rf /"
    assert message.is_error is False


def test_message_ids_are_unique() -> None:
    a = ChatMessage(role=MessageRole.USER, content="hi")
    b = ChatMessage(role=MessageRole.USER, content="hi")
    assert a.id != b.id
    assert len(a.id) == 8
