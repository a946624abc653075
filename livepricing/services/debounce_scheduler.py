"""Per-key debounce scheduler.

Coalesces bursts of updates for the same key into a single callback that
runs once the key has been quiet for the configured window. Each key holds
at most one pending timer and the latest payload; a new call cancels the
timer and replaces the payload. Keys never interact.

Timers run on an asyncio event loop (``loop.call_later``), so callbacks
execute on the loop thread, one at a time.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, Optional

import structlog

from livepricing.config.errors import EngineStateError, ErrorCode

logger = structlog.get_logger()

DebounceCallback = Callable[[Hashable, Any], None]


@dataclass
class PendingUpdate:
    """Live timer for one key."""

    handle: asyncio.TimerHandle
    payload: Any
    callback: DebounceCallback
    scheduled_at: float
    coalesced: int = 0


class DebounceScheduler:
    """Debounces callbacks per key on an asyncio event loop."""

    def __init__(self, delay_ms: float, loop: Optional[asyncio.AbstractEventLoop] = None):
        """Initialize DebounceScheduler.

        Args:
            delay_ms: Quiet period in milliseconds.
            loop: Event loop to schedule on. Defaults to the running loop
                at the time of each ``schedule`` call.
        """
        self.delay_ms = max(float(delay_ms), 0.0)
        self._loop = loop
        self._pending: Dict[Hashable, PendingUpdate] = {}

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def is_pending(self, key: Hashable) -> bool:
        return key in self._pending

    def pending_payload(self, key: Hashable) -> Any:
        """Latest payload waiting for ``key``, or None."""
        entry = self._pending.get(key)
        return entry.payload if entry is not None else None

    def _resolve_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None and not self._loop.is_closed():
            return self._loop
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            raise EngineStateError(
                code=ErrorCode.NO_EVENT_LOOP,
                message="Debounced updates need a running event loop or an explicit loop",
            )

    def schedule(self, key: Hashable, payload: Any, callback: DebounceCallback) -> None:
        """(Re)start the timer for ``key`` with ``payload``.

        Any pending timer for the same key is cancelled and its payload
        discarded; ``callback(key, payload)`` runs once after the window.

        Raises:
            EngineStateError: If no event loop is available.
        """
        loop = self._resolve_loop()
        previous = self._pending.pop(key, None)
        coalesced = 0
        if previous is not None:
            previous.handle.cancel()
            coalesced = previous.coalesced + 1

        handle = loop.call_later(self.delay_ms / 1000.0, self._fire, key)
        self._pending[key] = PendingUpdate(
            handle=handle,
            payload=payload,
            callback=callback,
            scheduled_at=time.monotonic(),
            coalesced=coalesced,
        )
        logger.debug("debounce_scheduled", key=key, delay_ms=self.delay_ms, coalesced=coalesced)

    def _fire(self, key: Hashable) -> None:
        entry = self._pending.pop(key, None)
        if entry is None:
            return
        logger.debug("debounce_fired", key=key, coalesced=entry.coalesced)
        entry.callback(key, entry.payload)

    def cancel(self, key: Hashable) -> bool:
        """Cancel the pending timer for ``key``.

        Returns:
            True if a timer was cancelled.
        """
        entry = self._pending.pop(key, None)
        if entry is None:
            return False
        entry.handle.cancel()
        return True

    def cancel_all(self) -> int:
        """Cancel every pending timer. Returns how many were cancelled."""
        count = 0
        for key in list(self._pending):
            if self.cancel(key):
                count += 1
        return count
