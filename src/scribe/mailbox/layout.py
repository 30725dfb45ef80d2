"""
Mailbox layout: mapping between conversations and directories.

    <root>/<conversation>/inbox/<stamp>.<turn>.md
    <root>/<conversation>/<thread>/inbox/<stamp>.<turn>.md
    <root>/<conversation>/[<thread>/]outbox/<message>.md
    <root>/<conversation>/[<thread>/]sent/<message>.md
    <root>/<conversation>/history/<stamp>.<turn>.md

The outbox grammar below is the only definition of a valid outbox entry.
"""

from __future__ import annotations

import re
from pathlib import Path, PurePath
from typing import Literal, Optional, Union

from ..contracts.v1 import OutboxEntry, Turn
from ..util.time import sortable_stamp
from .directory import ConversationDirectory
from .errors import MalformedPath

Box = Literal["inbox", "outbox", "sent", "history"]
BOXES = ("inbox", "outbox", "sent", "history")

OUTBOX_PATTERN = re.compile(
    r"^(?P<conversation>[^/]+)/(?:(?P<thread>[^/]+)/)?outbox/(?P<message>[^/]+)\.md$"
)
OUTBOX_GLOB = "**/outbox/*.md"


def _check_segment(value: str, what: str) -> str:
    s = str(value or "")
    if not s or s in (".", "..") or "/" in s or "\\" in s or "\x00" in s:
        raise ValueError(f"invalid {what}: {value!r}")
    return s


def turn_filename(turn: Turn, ext: str = "md") -> str:
    return f"{sortable_stamp(turn.timestamp)}.{_check_segment(turn.external_id, 'turn id')}.{ext}"


class MailboxLayout:
    def __init__(self, root: Union[str, Path], directory: Optional[ConversationDirectory] = None):
        self.root = Path(root)
        self.directory = directory if directory is not None else ConversationDirectory()

    def conversation_path(self, conversation_id: str) -> Path:
        slug = self.directory.slug_for(_check_segment(conversation_id, "conversation id"))
        return self.root / _check_segment(slug, "conversation directory")

    def mailbox_path(self, conversation_id: str, thread_id: Optional[str] = None, box: Box = "inbox") -> Path:
        if box not in BOXES:
            raise ValueError(f"unknown box: {box!r}")
        base = self.conversation_path(conversation_id)
        if thread_id:
            tid = _check_segment(thread_id, "thread id")
            if tid in BOXES:
                raise ValueError(f"thread id collides with a box name: {tid!r}")
            base = base / tid
        return base / box

    def outbox_file(self, entry: OutboxEntry) -> Path:
        return self.mailbox_path(entry.conversation_id, entry.thread_id, "outbox") / f"{entry.message_id}.md"

    def parse_outbox_path(self, path: Union[str, PurePath]) -> Optional[OutboxEntry]:
        """Recover (conversation, thread, message) from an outbox path, or None."""
        p = PurePath(path)
        try:
            rel = p.relative_to(self.root) if p.is_absolute() == self.root.is_absolute() else None
        except ValueError:
            rel = None
        if rel is None:
            return None

        m = OUTBOX_PATTERN.match(rel.as_posix())
        if not m:
            return None
        conversation, thread, message = m.group("conversation", "thread", "message")
        if thread in BOXES or conversation in (".", "..") or thread in (".", ".."):
            return None
        return OutboxEntry(
            conversation_id=self.directory.id_for(conversation),
            thread_id=thread or None,
            message_id=message,
        )

    def require_outbox_path(self, path: Union[str, PurePath]) -> OutboxEntry:
        entry = self.parse_outbox_path(path)
        if entry is None:
            raise MalformedPath(f"not an outbox entry: {path}")
        return entry
