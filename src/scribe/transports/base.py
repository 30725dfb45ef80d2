"""
Base class for chat transports.

A transport owns the connection to one chat platform. The mailbox bridge
only ever talks to it through this interface:
- subscribe(): push inbound turns as InboundEvent
- resolve_destination() / send(): deliver replies
- list_conversations() / fetch_page(): discovery and history
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, List, Optional

from ..contracts.v1 import ConversationInfo, InboundEvent, Turn

EventHandler = Callable[[InboundEvent], Awaitable[None]]


class Transport(ABC):
    platform: str = "unknown"

    def __init__(self) -> None:
        self._handler: Optional[EventHandler] = None

    @property
    def user_id(self) -> Optional[str]:
        """The bot's own user id once connected (used to strip self-mentions)."""
        return None

    @abstractmethod
    async def connect(self) -> None:
        """Connect and wait until ready. Raises ConnectionError on failure."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Orderly disconnect."""

    def subscribe(self, handler: Optional[EventHandler]) -> None:
        self._handler = handler

    async def dispatch(self, event: InboundEvent) -> None:
        """Hand an inbound event to the subscriber; events before subscribe() are dropped."""
        if self._handler is not None:
            await self._handler(event)

    @abstractmethod
    async def resolve_destination(self, destination_id: str) -> Any:
        """Return a sendable handle. Raises ChannelUnavailable."""

    @abstractmethod
    async def send(self, destination: Any, text: str) -> None:
        """Send one piece of text and wait for the ack. Raises TransportError."""

    @abstractmethod
    async def list_conversations(self) -> List[ConversationInfo]:
        pass

    @abstractmethod
    async def fetch_page(self, conversation_id: str, before: Optional[str] = None, limit: int = 100) -> List[Turn]:
        """Turns older than `before` (newest first); an empty list ends pagination."""
