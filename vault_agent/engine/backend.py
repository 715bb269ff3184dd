"""Backend seam and the Claude Agent SDK implementation.

The service only needs two things from a backend: an async iterable of
raw event dicts, and a cooperative interrupt() on that stream. Any
object satisfying BackendStream works; ClaudeSDKBackend wraps
claude_agent_sdk.ClaudeSDKClient and normalises SDK message objects
into the Claude Code stream-json dict shape.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Callable, Protocol

from .errors import BackendUnavailableError

logger = logging.getLogger(__name__)


@dataclass
class BackendOptions:
    """Resolved options for one backend call."""
    cwd: str
    cli_path: str
    # Set by cancellation; a stream still connecting checks it before reading
    cancel_event: asyncio.Event = field(repr=False)
    resume: str | None = None
    permission_mode: str = "bypassPermissions"
    allowed_tools: list[str] = field(default_factory=list)
    model: str | None = None


class BackendStream(Protocol):
    """A single in-flight backend call."""

    def __aiter__(self) -> AsyncIterator[dict[str, Any]]:
        ...

    async def interrupt(self) -> None:
        ...


class Backend(Protocol):
    def open(self, prompt: str, options: BackendOptions) -> BackendStream:
        ...


def _tool_result_text(content: Any) -> Any:
    """Flatten SDK tool-result content blocks into plain text."""
    if content is None:
        return ""
    if isinstance(content, list):
        parts: list[str] = []
        for item in content:
            if isinstance(item, dict):
                text = item.get("text")
                if isinstance(text, str):
                    parts.append(text)
            elif isinstance(item, str):
                parts.append(item)
        return "\n".join(parts)
    return content


def normalize_sdk_message(message: Any) -> list[dict[str, Any]]:
    """Convert one SDK message object into raw stream-json event dicts.

    ResultMessage and SystemMessage both carry ``subtype``, so the
    result check must come first.
    """
    if isinstance(message, dict):
        return [message]

    if hasattr(message, "is_error") and hasattr(message, "num_turns"):
        return [{
            "type": "result",
            "subtype": getattr(message, "subtype", None),
            "is_error": bool(getattr(message, "is_error", False)),
            "result": getattr(message, "result", None),
            "session_id": getattr(message, "session_id", None),
        }]

    if hasattr(message, "subtype") and hasattr(message, "data"):
        data = getattr(message, "data", None) or {}
        return [{
            "type": "system",
            "subtype": message.subtype,
            "session_id": data.get("session_id") if isinstance(data, dict) else None,
        }]

    content = getattr(message, "content", None)
    if not isinstance(content, list):
        # Partial stream events and plain user prompts are not surfaced.
        return []

    blocks: list[dict[str, Any]] = []
    results: list[dict[str, Any]] = []
    for block in content:
        if hasattr(block, "tool_use_id"):
            results.append({
                "type": "tool_result",
                "tool_use_id": block.tool_use_id,
                "content": _tool_result_text(getattr(block, "content", None)),
                "is_error": bool(getattr(block, "is_error", False)),
            })
        elif hasattr(block, "thinking"):
            continue
        elif hasattr(block, "name") and hasattr(block, "input"):
            blocks.append({
                "type": "tool_use",
                "id": getattr(block, "id", None),
                "name": block.name,
                "input": block.input,
            })
        elif hasattr(block, "text"):
            blocks.append({"type": "text", "text": block.text})

    events: list[dict[str, Any]] = []
    if blocks:
        events.append({"type": "assistant", "message": {"content": blocks}})
    events.extend(results)
    return events


class ClaudeSDKStream:
    """One ClaudeSDKClient conversation turn exposed as a BackendStream."""

    def __init__(
        self,
        prompt: str,
        client_factory: Callable[[], Any],
        cancel_event: asyncio.Event | None = None,
    ) -> None:
        self._prompt = prompt
        self._client_factory = client_factory
        self._cancel_event = cancel_event
        self._client: Any = None
        # True once the prompt is sent and the client accepts interrupt()
        self._ready = False
        self._interrupt_pending = False

    def __aiter__(self) -> AsyncIterator[dict[str, Any]]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[dict[str, Any]]:
        self._client = self._client_factory()
        await self._client.connect()
        try:
            await self._client.query(self._prompt)
            if self._interrupt_pending or (
                self._cancel_event is not None and self._cancel_event.is_set()
            ):
                logger.info("Forwarding interrupt requested while the SDK client was connecting")
                self._interrupt_pending = False
                await self._client.interrupt()
            self._ready = True
            async for message in self._client.receive_response():
                for raw in normalize_sdk_message(message):
                    yield raw
        finally:
            self._ready = False
            await self._client.disconnect()

    async def interrupt(self) -> None:
        if not self._ready:
            # Sent once the prompt has gone out.
            logger.debug("interrupt() before the SDK client is ready; deferring")
            self._interrupt_pending = True
            return
        await self._client.interrupt()


class ClaudeSDKBackend:
    """Backend over claude_agent_sdk.ClaudeSDKClient."""

    def open(self, prompt: str, options: BackendOptions) -> ClaudeSDKStream:
        # Import SDK lazily so the policy/transform layers stay importable
        # without it.
        try:
            from claude_agent_sdk import ClaudeAgentOptions, ClaudeSDKClient
        except ImportError as exc:
            raise BackendUnavailableError(
                f"claude_agent_sdk not installed ({exc})"
            ) from exc

        options_kwargs: dict[str, Any] = dict(
            cwd=options.cwd,
            cli_path=options.cli_path,
            permission_mode=options.permission_mode,
            allowed_tools=list(options.allowed_tools),
        )
        if options.resume:
            options_kwargs["resume"] = options.resume
        if options.model:
            options_kwargs["model"] = options.model

        logger.info(
            "Opening Claude SDK stream cwd=%s cli=%s mode=%s resume=%s",
            options.cwd,
            options.cli_path,
            options.permission_mode,
            options.resume or "<new>",
        )
        sdk_options = ClaudeAgentOptions(**options_kwargs)
        return ClaudeSDKStream(
            prompt,
            client_factory=lambda: ClaudeSDKClient(options=sdk_options),
            cancel_event=options.cancel_event,
        )
