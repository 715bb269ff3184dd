"""Public entry point: AgentService.

query() resolves the preconditions (vault path, Claude CLI), opens a
backend stream resuming the last captured session, and yields typed
chunks as backend events arrive. Every call ends with exactly one
DoneChunk, including precondition failures, backend errors and
cancellation. Expected failures become ErrorChunks; nothing is raised
across the iterator for them.

Each query gets its own call id and cancellation handle:

    stream = service.query("summarise today's notes")
    async for chunk in stream:
        ...
    stream.cancel()          # this call only
    service.cancel()         # every active call
"""
from __future__ import annotations

import logging
from typing import AsyncGenerator, AsyncIterator

from .backend import Backend, BackendOptions, ClaudeSDKBackend
from .backend_events import parse_backend_event
from .chunks import DoneChunk, ErrorChunk, StreamChunk
from .command_policy import CommandPolicy
from .config import AgentSettings, ServiceConfig
from .discovery import ClaudeCLILocator, VaultPathSource, resolve_vault_path
from .errors import PreconditionError, ServiceClosedError
from .session import ActiveCall, SessionController
from .transformer import MessageTransformer

logger = logging.getLogger(__name__)


class QueryStream:
    """Lazy, single-consumer chunk sequence for one query.

    Not restartable. Abandoning it does not cancel the backend call;
    use cancel() for that.
    """

    def __init__(
        self,
        controller: SessionController,
        call: ActiveCall,
        chunks: AsyncGenerator[StreamChunk, None],
    ) -> None:
        self._controller = controller
        self._call = call
        self._chunks = chunks

    @property
    def call_id(self) -> str:
        return self._call.call_id

    @property
    def cancelled(self) -> bool:
        return self._call.cancelled

    def cancel(self) -> None:
        """Request cooperative cancellation of this call."""
        self._controller.cancel_call(self._call)

    def __aiter__(self) -> QueryStream:
        return self

    async def __anext__(self) -> StreamChunk:
        return await self._chunks.__anext__()

    async def aclose(self) -> None:
        await self._chunks.aclose()


class AgentService:
    """Shapes and polices the Claude Code event stream for one vault."""

    def __init__(
        self,
        config: ServiceConfig | None = None,
        *,
        vault_path: VaultPathSource = None,
        backend: Backend | None = None,
        cli_locator: ClaudeCLILocator | None = None,
    ) -> None:
        self._config = config or ServiceConfig()
        self._vault_path: VaultPathSource = (
            vault_path if vault_path is not None else self._config.vault_path
        )
        self._backend: Backend = backend or ClaudeSDKBackend()
        self._cli_locator = cli_locator or ClaudeCLILocator(
            explicit_path=self._config.cli_path,
        )
        self._controller = SessionController()
        self._closed = False

    @property
    def config(self) -> ServiceConfig:
        return self._config

    @property
    def settings(self) -> AgentSettings:
        """Live settings; changes apply from the next query."""
        return self._config.settings

    @settings.setter
    def settings(self, value: AgentSettings) -> None:
        self._config.settings = value

    @property
    def session_id(self) -> str | None:
        return self._controller.session_id

    @property
    def active_call_ids(self) -> list[str]:
        return self._controller.active_call_ids

    # ── caller contract ──────────────────────────────────────

    def query(self, prompt: str) -> QueryStream:
        """Start a query. Iterate the result to drive it."""
        if self._closed:
            raise ServiceClosedError()
        call = ActiveCall()
        return QueryStream(self._controller, call, self._run(call, prompt))

    def cancel(self, call_id: str | None = None) -> int:
        """Cancel one call by id, or every active call.

        A no-op when nothing is running. Returns the number of calls
        signalled.
        """
        return self._controller.cancel(call_id)

    def reset_session(self) -> None:
        """Forget the backend session; the next query starts fresh."""
        self._controller.reset_session()

    def cleanup(self) -> None:
        """Cancel everything and forget the session. Idempotent."""
        self.cancel()
        self.reset_session()

    def close(self) -> None:
        """cleanup() and refuse further queries."""
        self.cleanup()
        self._closed = True

    # ── query state machine ──────────────────────────────────

    def _resolve(self) -> tuple[str, str]:
        cwd = resolve_vault_path(self._vault_path)
        cli_path = self._cli_locator.require()
        return cwd, cli_path

    def _build_transformer(self) -> MessageTransformer:
        settings = self._config.settings
        return MessageTransformer(
            CommandPolicy(settings.blocked_commands, settings.enable_blocklist)
        )

    async def _run(
        self, call: ActiveCall, prompt: str,
    ) -> AsyncIterator[StreamChunk]:
        controller = self._controller
        controller.begin_call(call)
        try:
            logger.info("Query %s: %s", call.call_id, prompt[:50])

            try:
                cwd, cli_path = self._resolve()
            except PreconditionError as exc:
                logger.warning("Query %s precondition failed: %s", call.call_id, exc)
                controller.finish_call(call)
                yield ErrorChunk(content=str(exc))
                yield DoneChunk()
                return

            if call.cancelled:
                logger.info("Query %s cancelled before the backend stream opened", call.call_id)
                controller.finish_call(call)
                yield DoneChunk()
                return

            transformer = self._build_transformer()
            options = BackendOptions(
                cwd=cwd,
                cli_path=cli_path,
                cancel_event=call.cancel_event,
                resume=controller.session_id,
                permission_mode=self._config.permission_mode,
                allowed_tools=list(self._config.allowed_tools),
                model=self._config.model,
            )

            event_count = 0
            try:
                stream = self._backend.open(prompt, options)
                controller.attach_stream(call, stream)
                events = stream.__aiter__()
                try:
                    async for raw in events:
                        event_count += 1
                        event = parse_backend_event(raw)
                        for chunk in transformer.transform(event, controller.session):
                            yield chunk
                        if call.cancelled:
                            controller.request_interrupt(call)
                            await controller.settle_interrupt(call)
                finally:
                    aclose = getattr(events, "aclose", None)
                    if aclose is not None:
                        await aclose()
            except Exception as exc:
                logger.exception("Query %s backend stream failed", call.call_id)
                yield ErrorChunk(content=str(exc) or type(exc).__name__)

            await controller.settle_interrupt(call)
            logger.info(
                "Query %s finished events=%d cancelled=%s session=%s",
                call.call_id, event_count, call.cancelled,
                controller.session_id or "<none>",
            )
            controller.finish_call(call)
            yield DoneChunk()
        finally:
            controller.finish_call(call)
