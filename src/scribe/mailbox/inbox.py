from __future__ import annotations

import logging
import re
from typing import Optional

from ..contracts.v1 import Turn
from ..util.fs import atomic_write_text
from .layout import MailboxLayout, turn_filename

logger = logging.getLogger("scribe.inbox")


def blockquote(text: str) -> str:
    return "\n".join(f"> {line}" for line in text.split("\n"))


class InboxWriter:
    """Write one inbound turn as one file in its conversation's inbox."""

    def __init__(self, layout: MailboxLayout, *, agent_name: Optional[str] = None, self_user_id: Optional[str] = None):
        self.layout = layout
        self.agent_name = (agent_name or "").strip() or None
        self.self_user_id = self_user_id

    def strip_content(self, content: str) -> str:
        text = content or ""
        # Mentions and the agent name are only stripped when AGENT_NAME is set.
        if self.agent_name:
            if self.self_user_id:
                text = re.sub(rf"<@!?{re.escape(self.self_user_id)}>", "", text)
            text = re.sub(rf"@?{re.escape(self.agent_name)}", "", text, flags=re.IGNORECASE)
        return text.strip()

    def render(self, turn: Turn) -> str:
        content = self.strip_content(turn.content)
        if turn.quoted_content:
            return f"{blockquote(turn.quoted_content)}\n\n{content}"
        return content

    def write(self, turn: Turn, conversation_id: str, thread_id: Optional[str] = None) -> str:
        inbox = self.layout.mailbox_path(conversation_id, thread_id, "inbox")
        filename = turn_filename(turn)
        # Last write wins if the file already exists.
        atomic_write_text(inbox / filename, self.render(turn))
        logger.info(
            f">>> Received: {filename}",
            extra={"conversation_id": conversation_id, "thread_id": thread_id, "message_id": turn.external_id},
        )
        return filename
