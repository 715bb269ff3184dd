"""Session identity and per-call cancellation.

SessionController owns:
- the SessionState (backend session handle reused as ``resume``),
- one ActiveCall per in-flight query, keyed by call id.

Cancellation is cooperative: cancel() sets the call's asyncio.Event and
asks the backend stream to interrupt(). The stream keeps being drained
until the backend ends it; nothing is killed. All mutation happens on
the event loop, so no locks are needed.
"""
from __future__ import annotations

import asyncio
import inspect
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Awaitable

from .backend import BackendStream
from .transformer import SessionState

logger = logging.getLogger(__name__)


def _gen_call_id() -> str:
    return uuid.uuid4().hex[:12]


@dataclass
class ActiveCall:
    """Controller record for one in-flight backend call."""

    call_id: str = field(default_factory=_gen_call_id)
    cancel_event: asyncio.Event = field(default_factory=asyncio.Event, repr=False)
    stream: BackendStream | None = field(default=None, repr=False)
    started_at: float = field(default_factory=time.monotonic)
    interrupt_requested: bool = False
    # interrupt() result still to be awaited by the draining loop
    interrupt_waiter: Awaitable[Any] | None = field(default=None, repr=False)

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()


class SessionController:
    """Tracks the session handle and every active call."""

    def __init__(self) -> None:
        self._session = SessionState()
        self._active: dict[str, ActiveCall] = {}

    @property
    def session(self) -> SessionState:
        return self._session

    @property
    def session_id(self) -> str | None:
        return self._session.handle

    @property
    def active_call_ids(self) -> list[str]:
        return list(self._active)

    def get(self, call_id: str) -> ActiveCall | None:
        return self._active.get(call_id)

    # ── call lifecycle ───────────────────────────────────────

    def begin_call(self, call: ActiveCall | None = None) -> ActiveCall:
        """Register *call* (or a fresh one) as in flight."""
        call = call or ActiveCall()
        self._active[call.call_id] = call
        logger.debug(
            "Call %s started (active=%d resume=%s)",
            call.call_id, len(self._active), self._session.handle or "<none>",
        )
        return call

    def attach_stream(self, call: ActiveCall, stream: BackendStream) -> None:
        call.stream = stream
        if call.cancelled:
            self.request_interrupt(call)

    def finish_call(self, call: ActiveCall) -> None:
        """Drop the call record. Safe to call more than once."""
        if self._active.pop(call.call_id, None) is None:
            return
        waiter = call.interrupt_waiter
        if inspect.iscoroutine(waiter):
            # Never scheduled (no running loop at cancel time).
            waiter.close()
            call.interrupt_waiter = None
        logger.debug(
            "Call %s finished after %.2fs (cancelled=%s)",
            call.call_id, time.monotonic() - call.started_at, call.cancelled,
        )

    # ── cancellation ─────────────────────────────────────────

    def cancel(self, call_id: str | None = None) -> int:
        """Cancel one call, or every active call when no id is given.

        Returns the number of calls signalled. Unknown ids and an idle
        controller are no-ops.
        """
        if call_id is not None:
            call = self._active.get(call_id)
            targets = [call] if call is not None else []
        else:
            targets = list(self._active.values())
        for call in targets:
            self.cancel_call(call)
        return len(targets)

    def cancel_call(self, call: ActiveCall) -> None:
        """Signal one call, registered or not yet started."""
        if not call.cancelled:
            logger.info("Cancelling call %s", call.call_id)
        call.cancel_event.set()
        self.request_interrupt(call)

    def request_interrupt(self, call: ActiveCall) -> None:
        """Ask the call's stream to stop, at most once per call."""
        if call.stream is None or call.interrupt_requested:
            return
        call.interrupt_requested = True
        try:
            result = call.stream.interrupt()
        except Exception:
            logger.warning("interrupt() failed for call %s", call.call_id, exc_info=True)
            return
        if not inspect.isawaitable(result):
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Awaited by the draining loop at its next suspension point.
            call.interrupt_waiter = result
            return
        task = asyncio.ensure_future(result, loop=loop)
        task.add_done_callback(_log_interrupt_failure)
        call.interrupt_waiter = task

    async def settle_interrupt(self, call: ActiveCall) -> None:
        """Wait for a pending interrupt request to complete."""
        waiter = call.interrupt_waiter
        if waiter is None:
            return
        call.interrupt_waiter = None
        try:
            await waiter
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.warning(
                "Backend interrupt failed for call %s", call.call_id, exc_info=True,
            )

    def reset_session(self) -> None:
        if self._session.handle:
            logger.info("Resetting session %s", self._session.handle)
        self._session.handle = None


def _log_interrupt_failure(task: asyncio.Future[Any]) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning("Backend interrupt raised: %s", exc)
