"""
Reply delivery: outbox file -> transport -> sent/.

The rename into sent/ is the commit point. A crash between the last send
and the rename leaves the file in outbox/ and it is sent again on the next
pass, so delivery is at-least-once.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from ..contracts.v1 import OutboxEntry
from ..transports.base import Transport
from ..util.fs import move_into
from .chunker import DEFAULT_LIMIT, chunk, split_sections
from .errors import ChannelUnavailable, NotFound
from .layout import MailboxLayout

logger = logging.getLogger("scribe.sender")

EMPTY_PLACEHOLDER = "(empty)"


def compose_pieces(content: str, limit: int = DEFAULT_LIMIT) -> List[str]:
    """Trimmed content -> sections -> chunks, flattened in order."""
    text = (content or "").strip()
    pieces: List[str] = []
    for section in split_sections(text):
        pieces.extend(chunk(section, limit))
    return pieces or [EMPTY_PLACEHOLDER]


def read_outbox(path: Path) -> str:
    """Read an outbox entry; undecodable bytes become U+FFFD. Raises NotFound if it vanished."""
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except FileNotFoundError as e:
        raise NotFound(f"outbox file vanished: {path.name}") from e


class ReplySender:
    def __init__(self, layout: MailboxLayout, transport: Transport, *, limit: int = DEFAULT_LIMIT):
        self.layout = layout
        self.transport = transport
        self.limit = limit

    async def send(self, conversation_id: str, thread_id: Optional[str], message_id: str) -> bool:
        """
        Deliver one outbox entry. Returns True once archived into sent/.

        Returns False when the file vanished (already handled) or the
        destination cannot be resolved (left in place for the next pass).
        TransportError propagates; the file likewise stays in outbox/.
        """
        entry = OutboxEntry(conversation_id=conversation_id, thread_id=thread_id, message_id=message_id)
        ctx = {"conversation_id": conversation_id, "thread_id": thread_id, "message_id": message_id}
        src = self.layout.outbox_file(entry)

        try:
            content = read_outbox(src)
        except NotFound as e:
            logger.debug(str(e), extra=ctx)
            return False

        target_id = thread_id or conversation_id
        try:
            destination = await self.transport.resolve_destination(target_id)
        except ChannelUnavailable as e:
            logger.warning(f"destination {target_id} unavailable: {e}", extra=ctx)
            return False

        for piece in compose_pieces(content, self.limit):
            await self.transport.send(destination, piece)

        move_into(src, self.layout.mailbox_path(conversation_id, thread_id, "sent"))
        logger.info(f"<<< Sent: {src.name}", extra=ctx)
        return True
