"""
History backfill.

One-shot walk over every conversation's history, newest page first, writing
one file per turn under <conversation>/history/. Existing files are left
alone, so a run can be interrupted and restarted at any point. There is no
persisted cursor; every run is a full re-walk.

Not meant to run concurrently with a live poller on the same tree.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, Optional

import yaml

from ..contracts.v1 import ConversationInfo, Turn
from ..transports.base import Transport
from ..util.fs import atomic_write_text
from ..util.time import utc_iso
from .layout import MailboxLayout, turn_filename

logger = logging.getLogger("scribe.history")

PAGE_SIZE = 100


def render_history_entry(turn: Turn, conversation_name: str) -> str:
    header = yaml.safe_dump(
        {"author": turn.author, "date": utc_iso(turn.timestamp), "channel": conversation_name},
        allow_unicode=True,
        sort_keys=False,
        default_flow_style=False,
    )
    return f"---\n{header}---\n\n{turn.content}\n"


class HistoryBackfill:
    def __init__(self, layout: MailboxLayout, transport: Transport, *, page_size: int = PAGE_SIZE):
        if page_size <= 0:
            raise ValueError("page_size must be positive")
        self.layout = layout
        self.transport = transport
        self.page_size = page_size

    def write_turn(self, turn: Turn, conversation: ConversationInfo, history_dir: Path) -> bool:
        """Returns True if a file was written, False if it already existed."""
        path = history_dir / turn_filename(turn)
        if path.exists():
            return False
        name = self.layout.directory.lookup(conversation.id) or conversation.display_name
        atomic_write_text(path, render_history_entry(turn, name))
        return True

    async def backfill_conversation(self, conversation: ConversationInfo) -> int:
        history_dir = self.layout.mailbox_path(conversation.id, None, "history")
        history_dir.mkdir(parents=True, exist_ok=True)
        ctx = {"conversation_id": conversation.id}

        before: Optional[str] = None
        written = 0
        while True:
            page = await self.transport.fetch_page(conversation.id, before=before, limit=self.page_size)
            if not page:
                break
            for turn in page:
                try:
                    if self.write_turn(turn, conversation, history_dir):
                        written += 1
                except Exception as e:
                    logger.error(f"failed to write history turn {turn.external_id}: {e}", extra={**ctx, "message_id": turn.external_id})
            # Pages are newest first; the last turn is the oldest.
            before = page[-1].external_id

        logger.info(f"#{self.layout.directory.slug_for(conversation.id)}: {written} messages", extra=ctx)
        return written

    async def run(self, conversations: Optional[Iterable[ConversationInfo]] = None) -> Dict[str, int]:
        """Backfill every conversation; returns written (not skipped) counts by conversation id."""
        if conversations is None:
            conversations = await self.transport.list_conversations()
        counts: Dict[str, int] = {}
        for conversation in conversations:
            try:
                counts[conversation.id] = await self.backfill_conversation(conversation)
            except Exception as e:
                logger.error(f"backfill failed: {e}", extra={"conversation_id": conversation.id})
        return counts
