"""
Mailbox bridge core.

Inbound turns become files in per-conversation inbox/ directories; replies
written to outbox/ are delivered and archived into sent/; history/ holds
backfilled turns. Files are the only state.
"""

from .chunker import chunk, split_sections
from .directory import ConversationDirectory, slugify
from .errors import (
    ChannelUnavailable,
    ConfigurationError,
    DeliveryError,
    MalformedPath,
    NotFound,
    ScribeError,
    TransportError,
)
from .history import HistoryBackfill
from .inbox import InboxWriter
from .layout import MailboxLayout, turn_filename
from .poller import OutboxPoller, PollState
from .sender import EMPTY_PLACEHOLDER, ReplySender

__all__ = [
    "ChannelUnavailable",
    "ConfigurationError",
    "ConversationDirectory",
    "DeliveryError",
    "EMPTY_PLACEHOLDER",
    "HistoryBackfill",
    "InboxWriter",
    "MailboxLayout",
    "MalformedPath",
    "NotFound",
    "OutboxPoller",
    "PollState",
    "ReplySender",
    "ScribeError",
    "TransportError",
    "chunk",
    "slugify",
    "split_sections",
    "turn_filename",
]
