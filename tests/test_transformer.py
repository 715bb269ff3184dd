from __future__ import annotations

from vault_agent.engine.backend_events import (
    AssistantMessage,
    ErrorEvent,
    ResultEvent,
    SystemInit,
    TextBlock,
    ToolInvocation,
    ToolResultEvent,
    ToolUseEvent,
    UnknownEvent,
    parse_backend_event,
)
from vault_agent.engine.chunks import (
    BlockedChunk,
    ErrorChunk,
    TextChunk,
    ToolResultChunk,
    ToolUseChunk,
    chunk_to_dict,
)
from vault_agent.engine.command_policy import CommandPolicy
from vault_agent.engine.config import DEFAULT_BLOCKED_COMMANDS
from vault_agent.engine.transformer import (
    MessageTransformer,
    SessionState,
    extract_command,
    is_shell_tool,
)


def _transformer(enabled: bool = True) -> MessageTransformer:
    return MessageTransformer(CommandPolicy(list(DEFAULT_BLOCKED_COMMANDS), enabled))


def _transform(raw: dict, session: SessionState | None = None, enabled: bool = True):
    session = session or SessionState()
    return _transformer(enabled).transform(parse_backend_event(raw), session)


# ── parse_backend_event ──


def test_parse_system_init() -> None:
    event = parse_backend_event({"type": "system", "subtype": "init", "session_id": "s-1"})
    assert event == SystemInit(session_id="s-1")


def test_parse_system_without_init_subtype_is_unknown() -> None:
    event = parse_backend_event({"type": "system", "subtype": "compact"})
    assert isinstance(event, UnknownEvent)
    assert event.raw_type == "system/compact"


def test_parse_assistant_blocks_in_order() -> None:
    event = parse_backend_event({
        "type": "assistant",
        "message": {"content": [
            {"type": "text", "text": "Let me look."},
            {"type": "thinking", "thinking": "hmm"},
            {"type": "tool_use", "id": "t1", "name": "Read", "input": {"file_path": "a.md"}},
        ]},
    })
    assert event == AssistantMessage(blocks=(
        TextBlock(text="Let me look."),
        ToolInvocation(name="Read", input={"file_path": "a.md"}, id="t1"),
    ))


def test_parse_assistant_string_content() -> None:
    event = parse_backend_event({"type": "assistant", "message": {"content": "hi"}})
    assert event == AssistantMessage(blocks=(TextBlock(text="hi"),))


def test_parse_tool_use_without_input_defaults_to_empty_mapping() -> None:
    event = parse_backend_event({"type": "tool_use", "name": "Glob"})
    assert isinstance(event, ToolUseEvent)
    assert event.invocation.input == {}


def test_parse_error_falls_back_to_error_key() -> None:
    assert parse_backend_event({"type": "error", "error": "Something went wrong"}) == ErrorEvent(
        message="Something went wrong"
    )
    assert parse_backend_event({"type": "error", "message": "boom"}) == ErrorEvent(message="boom")


def test_parse_result_and_unknown() -> None:
    assert parse_backend_event({"type": "result", "is_error": True, "result": "x"}) == ResultEvent(
        is_error=True, result="x"
    )
    assert parse_backend_event({"type": "stream_event"}) == UnknownEvent(raw_type="stream_event")
    assert parse_backend_event("not a dict") == UnknownEvent(raw_type=None)


# ── MessageTransformer ──


def test_text_message_becomes_text_chunk() -> None:
    chunks = _transform({
        "type": "assistant",
        "message": {"content": [{"type": "text", "text": "Hello!"}]},
    })
    assert chunks == [TextChunk(content="Hello!")]


def test_read_tool_use_passes_through() -> None:
    chunks = _transform({
        "type": "assistant",
        "message": {"content": [
            {"type": "tool_use", "name": "Read", "input": {"file_path": "/vault/note.md"}},
        ]},
    })
    assert chunks == [ToolUseChunk(name="Read", input={"file_path": "/vault/note.md"})]


def test_tool_result_content_passes_through() -> None:
    chunks = _transform({"type": "tool_result", "content": "File contents"})
    assert chunks == [ToolResultChunk(content="File contents")]


def test_error_event_becomes_error_chunk() -> None:
    chunks = _transform({"type": "error", "error": "Something went wrong"})
    assert chunks == [ErrorChunk(content="Something went wrong")]


def test_result_and_unknown_events_yield_nothing() -> None:
    assert _transform({"type": "result", "is_error": True, "result": "failed"}) == []
    assert _transform({"type": "user"}) == []


def test_blocked_bash_command_replaces_tool_use() -> None:
    chunks = _transform({
        "type": "tool_use",
        "name": "Bash",
        "input": {"command": "rm -rf /"},
    })
    assert len(chunks) == 1
    blocked = chunks[0]
    assert isinstance(blocked, BlockedChunk)
    assert blocked.content == "Command blocked: rm -rf /"
    assert blocked.pattern == "rm -rf"


def test_allowed_bash_command_is_reported() -> None:
    chunks = _transform({"type": "tool_use", "name": "Bash", "input": {"command": "ls -la"}})
    assert chunks == [ToolUseChunk(name="Bash", input={"command": "ls -la"})]


def test_disabled_blocklist_reports_destructive_command() -> None:
    chunks = _transform(
        {"type": "tool_use", "name": "Bash", "input": {"command": "rm -rf /"}},
        enabled=False,
    )
    assert chunks == [ToolUseChunk(name="Bash", input={"command": "rm -rf /"})]


def test_non_shell_tool_skips_policy() -> None:
    # The input mentions a blocked pattern but Write is not a shell tool.
    chunks = _transform({
        "type": "tool_use",
        "name": "Write",
        "input": {"file_path": "notes.md", "content": "never run rm -rf"},
    })
    assert isinstance(chunks[0], ToolUseChunk)


def test_mixed_assistant_blocks_keep_order() -> None:
    chunks = _transform({
        "type": "assistant",
        "message": {"content": [
            {"type": "text", "text": "Cleaning up."},
            {"type": "tool_use", "name": "Bash", "input": {"command": "mkfs /dev/sda"}},
            {"type": "text", "text": "Done."},
        ]},
    })
    assert [c.type for c in chunks] == ["text", "blocked", "text"]


def test_first_init_event_wins_within_a_call() -> None:
    transformer = _transformer()
    session = SessionState()
    transformer.transform(SystemInit(session_id="first"), session)
    transformer.transform(SystemInit(session_id="second"), session)
    assert session.handle == "first"
    assert transformer.captured

    # Each call gets its own transformer; its first init replaces the handle.
    next_call = _transformer()
    assert not next_call.captured
    next_call.transform(SystemInit(session_id="third"), session)
    assert session.handle == "third"


def test_init_without_session_id_leaves_handle() -> None:
    session = SessionState(handle="keep")
    assert _transformer().transform(SystemInit(session_id=None), session) == []
    assert session.handle == "keep"


def test_shell_helpers() -> None:
    assert is_shell_tool("Bash")
    assert is_shell_tool("run_shell_command")
    assert not is_shell_tool("Read")
    assert extract_command({"cmd": "ls"}) == "ls"
    assert extract_command({"script": "echo hi"}) == "echo hi"
    assert extract_command({"path": "x"}) == ""


def test_chunk_to_dict_drops_unset_pattern() -> None:
    assert chunk_to_dict(BlockedChunk(content="Command blocked: x")) == {
        "type": "blocked",
        "content": "Command blocked: x",
    }
    assert chunk_to_dict(ToolUseChunk(name="Read", input={"file_path": "a"})) == {
        "type": "tool_use",
        "name": "Read",
        "input": {"file_path": "a"},
    }
