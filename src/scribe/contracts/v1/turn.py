from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ...util.time import as_utc


class Turn(BaseModel):
    """One unit of conversational content, inbound or outbound."""

    external_id: str = Field(min_length=1)  # transport-assigned, unique per turn
    timestamp: datetime
    content: str = ""
    direction: Literal["inbound", "outbound"] = "inbound"

    author: str = ""  # display name
    author_id: str = ""
    quoted_content: Optional[str] = None  # text of the message being replied to

    model_config = ConfigDict(extra="forbid")

    @field_validator("timestamp")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return as_utc(v)


class InboundEvent(BaseModel):
    """A turn as delivered by the transport's event subscription."""

    conversation_id: str = Field(min_length=1)
    thread_id: Optional[str] = None
    turn: Turn
    mentions_self: bool = False  # bot was explicitly @-mentioned

    model_config = ConfigDict(extra="forbid")


class ConversationInfo(BaseModel):
    id: str = Field(min_length=1)
    display_name: str = ""

    model_config = ConfigDict(extra="forbid")


class OutboxEntry(BaseModel):
    """Parsed form of <root>/<conversation>/[<thread>/]outbox/<message>.md"""

    conversation_id: str
    thread_id: Optional[str] = None
    message_id: str

    model_config = ConfigDict(extra="forbid", frozen=True)
