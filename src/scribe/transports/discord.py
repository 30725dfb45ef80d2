"""
Discord transport for the mailbox bridge.

Uses the discord.py Gateway client for inbound events and the REST API for
sends, channel resolution and history.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Optional

import discord

from ..contracts.v1 import ConversationInfo, InboundEvent, Turn
from ..mailbox.errors import ChannelUnavailable, TransportError
from .base import Transport

logger = logging.getLogger("scribe.discord")

READY_TIMEOUT_SECONDS = 30
ACCEPTED_TYPES = (discord.MessageType.default, discord.MessageType.reply)


def _to_turn(message: Any, quoted: Optional[str] = None) -> Turn:
    author = getattr(message, "author", None)
    return Turn(
        external_id=str(message.id),
        timestamp=message.created_at,
        content=message.content or "",
        direction="inbound",
        author=str(getattr(author, "name", "") or ""),
        author_id=str(getattr(author, "id", "") or ""),
        quoted_content=quoted,
    )


class DiscordTransport(Transport):
    platform = "discord"

    def __init__(self, token: str):
        super().__init__()
        self.token = token

        intents = discord.Intents.default()
        intents.guilds = True
        intents.guild_messages = True
        intents.dm_messages = True
        intents.message_content = True
        self._client = discord.Client(intents=intents)
        self._ready = asyncio.Event()
        self._runner: Optional[asyncio.Task] = None

        @self._client.event
        async def on_ready() -> None:
            logger.info(f"Connected to Discord as {self._client.user}", extra={"transport": self.platform})
            self._ready.set()

        @self._client.event
        async def on_message(message: Any) -> None:
            await self._handle_message(message)

    @property
    def user_id(self) -> Optional[str]:
        user = self._client.user
        return str(user.id) if user is not None else None

    async def connect(self) -> None:
        self._runner = asyncio.get_running_loop().create_task(self._client.start(self.token))
        ready = asyncio.get_running_loop().create_task(self._ready.wait())
        done, _ = await asyncio.wait({self._runner, ready}, timeout=READY_TIMEOUT_SECONDS, return_when=asyncio.FIRST_COMPLETED)
        if ready in done:
            return
        ready.cancel()
        if self._runner in done:
            exc = self._runner.exception()
            raise ConnectionError(f"Failed to connect to Discord: {exc}") from exc
        await self.disconnect()
        raise ConnectionError("Discord connection timeout")

    async def disconnect(self) -> None:
        if self._runner is None:
            return
        if not self._client.is_closed():
            await self._client.close()
        if self._runner is not None and not self._runner.done():
            try:
                await asyncio.wait_for(self._runner, timeout=5)
            except (asyncio.TimeoutError, asyncio.CancelledError, discord.DiscordException):
                pass
        logger.info("Disconnected", extra={"transport": self.platform})

    async def _handle_message(self, message: Any) -> None:
        if message.author.bot:
            return
        # Thread creations, pins and other system events are not turns.
        if message.type not in ACCEPTED_TYPES:
            return

        conversation_id = str(message.channel.id)
        thread_id: Optional[str] = None
        channel = message.channel
        if isinstance(channel, discord.Thread) and channel.parent_id:
            conversation_id = str(channel.parent_id)
            thread_id = str(channel.id)

        me = self._client.user
        mentions_self = me is not None and any(u.id == me.id for u in message.mentions)

        event = InboundEvent(
            conversation_id=conversation_id,
            thread_id=thread_id,
            turn=_to_turn(message, await self._quoted_content(message)),
            mentions_self=mentions_self,
        )
        await self.dispatch(event)

    async def _quoted_content(self, message: Any) -> Optional[str]:
        ref = message.reference
        if ref is None or ref.message_id is None:
            return None
        try:
            resolved = ref.resolved
            if not isinstance(resolved, discord.Message):
                resolved = await message.channel.fetch_message(ref.message_id)
            return resolved.content
        except discord.DiscordException as e:
            logger.warning(
                f"Failed to fetch referenced message: {e}",
                extra={"transport": self.platform, "message_id": str(message.id)},
            )
            return None

    async def resolve_destination(self, destination_id: str) -> Any:
        try:
            cid = int(destination_id)
        except ValueError as e:
            raise ChannelUnavailable(f"invalid channel id {destination_id!r}") from e

        channel = self._client.get_channel(cid)
        if channel is None:
            try:
                channel = await self._client.fetch_channel(cid)
            except discord.DiscordException as e:
                raise ChannelUnavailable(f"channel {destination_id} not found: {e}") from e
        if not isinstance(channel, discord.abc.Messageable):
            raise ChannelUnavailable(f"channel {destination_id} is not text-based")
        return channel

    async def send(self, destination: Any, text: str) -> None:
        try:
            await destination.send(text)
        except discord.DiscordException as e:
            raise TransportError(f"send to {getattr(destination, 'id', destination)} failed: {e}") from e

    async def list_conversations(self) -> List[ConversationInfo]:
        return [
            ConversationInfo(id=str(channel.id), display_name=channel.name)
            for guild in self._client.guilds
            for channel in guild.text_channels
        ]

    async def fetch_page(self, conversation_id: str, before: Optional[str] = None, limit: int = 100) -> List[Turn]:
        channel = await self.resolve_destination(conversation_id)
        marker = discord.Object(id=int(before)) if before else None
        try:
            return [_to_turn(m) async for m in channel.history(limit=limit, before=marker)]
        except discord.DiscordException as e:
            raise TransportError(f"history fetch for {conversation_id} failed: {e}") from e
