"""
In-process transport.

Keeps conversations and sent messages in memory. Used for dry runs of the
bridge against a local task root and as the transport double in tests.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from ..contracts.v1 import ConversationInfo, InboundEvent, Turn
from ..mailbox.errors import ChannelUnavailable, TransportError
from .base import Transport


@dataclass
class SentMessage:
    destination_id: str
    text: str


@dataclass
class _Conversation:
    info: ConversationInfo
    turns: List[Turn] = field(default_factory=list)  # oldest first


class MemoryTransport(Transport):
    platform = "memory"

    def __init__(self, user_id: str = "1000", send_delay: float = 0.0):
        super().__init__()
        self._user_id = user_id
        self.send_delay = send_delay
        self.connected = False
        self.sent: List[SentMessage] = []
        self.fail_sends: Set[str] = set()  # substrings that make send() fail
        self.threads: Set[str] = set()
        self.page_requests: List[Dict[str, Any]] = []
        self._conversations: Dict[str, _Conversation] = {}

    @property
    def user_id(self) -> Optional[str]:
        return self._user_id

    def add_conversation(self, conversation_id: str, display_name: str = "", turns: Optional[List[Turn]] = None) -> None:
        info = ConversationInfo(id=conversation_id, display_name=display_name or conversation_id)
        ordered = sorted(turns or [], key=lambda t: (t.timestamp, t.external_id))
        self._conversations[conversation_id] = _Conversation(info=info, turns=ordered)

    def add_thread(self, thread_id: str) -> None:
        self.threads.add(thread_id)

    async def connect(self) -> None:
        self.connected = True

    async def disconnect(self) -> None:
        self.connected = False

    async def deliver(self, event: InboundEvent) -> None:
        """Simulate the platform pushing a message."""
        await self.dispatch(event)

    async def resolve_destination(self, destination_id: str) -> Any:
        if destination_id in self._conversations or destination_id in self.threads:
            return destination_id
        raise ChannelUnavailable(f"unknown destination {destination_id}")

    async def send(self, destination: Any, text: str) -> None:
        if self.send_delay:
            await asyncio.sleep(self.send_delay)
        if any(marker in text for marker in self.fail_sends):
            raise TransportError(f"send rejected for {destination}")
        self.sent.append(SentMessage(destination_id=str(destination), text=text))

    async def list_conversations(self) -> List[ConversationInfo]:
        return [c.info for c in self._conversations.values()]

    async def fetch_page(self, conversation_id: str, before: Optional[str] = None, limit: int = 100) -> List[Turn]:
        self.page_requests.append({"conversation_id": conversation_id, "before": before, "limit": limit})
        conv = self._conversations.get(conversation_id)
        if conv is None:
            raise ChannelUnavailable(f"unknown conversation {conversation_id}")
        turns = conv.turns
        if before is not None:
            ids = [t.external_id for t in turns]
            turns = turns[: ids.index(before)] if before in ids else []
        return list(reversed(turns[-limit:])) if turns else []
