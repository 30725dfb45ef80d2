"""
Outbox poller.

Two states, IDLE and POLLING. A pass only starts through a compare-and-swap
from IDLE to POLLING, so at most one pass runs at a time whatever drives
the ticks. Ticks that arrive while a pass runs are dropped, not queued.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from enum import Enum
from pathlib import Path
from typing import List, Optional

from .layout import OUTBOX_GLOB, MailboxLayout
from .sender import ReplySender

logger = logging.getLogger("scribe.poller")


class PollState(str, Enum):
    IDLE = "idle"
    POLLING = "polling"


class OutboxPoller:
    def __init__(self, layout: MailboxLayout, sender: ReplySender):
        self.layout = layout
        self.sender = sender
        self.passes = 0
        self._state = PollState.IDLE
        self._state_lock = threading.Lock()
        self._inflight: Optional[asyncio.Task] = None

    @property
    def state(self) -> PollState:
        return self._state

    def _transition(self, expected: PollState, new: PollState) -> bool:
        with self._state_lock:
            if self._state is not expected:
                return False
            self._state = new
            return True

    def pending(self) -> List[Path]:
        # Re-enumerated every pass; nothing is cached between passes.
        if not self.layout.root.is_dir():
            return []
        return sorted(self.layout.root.glob(OUTBOX_GLOB))

    async def poll_once(self) -> bool:
        """Run one pass. Returns False if a pass was already running."""
        if not self._transition(PollState.IDLE, PollState.POLLING):
            return False
        try:
            self.passes += 1
            for path in self.pending():
                entry = self.layout.parse_outbox_path(path)
                if entry is None:
                    logger.debug(f"ignoring foreign outbox file: {path}")
                    continue
                try:
                    await self.sender.send(entry.conversation_id, entry.thread_id, entry.message_id)
                except Exception as e:
                    logger.error(
                        f"Error processing outbox file {entry.message_id}.md: {e}",
                        extra={
                            "conversation_id": entry.conversation_id,
                            "thread_id": entry.thread_id,
                            "message_id": entry.message_id,
                        },
                    )
        except Exception:
            logger.exception("Error in outbox poller")
        finally:
            self._state = PollState.IDLE
        return True

    def tick(self) -> bool:
        """Timer callback: start a pass in the background unless one is running."""
        if self._state is not PollState.IDLE:
            return False
        if self._inflight is not None and not self._inflight.done():
            return False
        self._inflight = asyncio.get_running_loop().create_task(self.poll_once())
        return True

    async def run(self, interval: float, stop: asyncio.Event) -> None:
        """Tick every `interval` seconds until `stop` is set, then let the in-flight pass finish."""
        while not stop.is_set():
            self.tick()
            try:
                await asyncio.wait_for(stop.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass
        if self._inflight is not None and not self._inflight.done():
            await self._inflight
