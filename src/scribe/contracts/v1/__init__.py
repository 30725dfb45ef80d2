from __future__ import annotations

from .turn import ConversationInfo, InboundEvent, OutboxEntry, Turn

__all__ = [
    "ConversationInfo",
    "InboundEvent",
    "OutboxEntry",
    "Turn",
]
