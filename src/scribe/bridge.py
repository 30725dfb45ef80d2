"""
Scribe mailbox bridge - wiring.

Handles:
- Inbound: transport events -> filters -> InboxWriter -> inbox/
- Outbound: OutboxPoller (timer) -> ReplySender -> transport, sent/
- Backfill: HistoryBackfill over every discovered conversation
"""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import Dict, List, Optional

from .config import BridgeSettings
from .contracts.v1 import ConversationInfo, InboundEvent
from .mailbox.directory import ConversationDirectory
from .mailbox.history import HistoryBackfill
from .mailbox.inbox import InboxWriter
from .mailbox.layout import MailboxLayout
from .mailbox.poller import OutboxPoller
from .mailbox.sender import ReplySender
from .transports.base import Transport

logger = logging.getLogger("scribe.bridge")


async def discover(transport: Transport, settings: BridgeSettings) -> MailboxLayout:
    """Build the conversation directory and create one directory per conversation."""
    directory = ConversationDirectory.build(await transport.list_conversations())
    layout = MailboxLayout(settings.task_root / transport.platform, directory)
    layout.root.mkdir(parents=True, exist_ok=True)
    for slug in directory.slugs():
        (layout.root / slug).mkdir(parents=True, exist_ok=True)
    logger.info(f"discovered {len(directory)} conversations", extra={"transport": transport.platform})
    return layout


class MailboxBridge:
    def __init__(self, transport: Transport, layout: MailboxLayout, settings: BridgeSettings):
        self.transport = transport
        self.layout = layout
        self.settings = settings

        self.inbox = InboxWriter(layout, agent_name=settings.agent_name, self_user_id=transport.user_id)
        self.sender = ReplySender(layout, transport)
        self.poller = OutboxPoller(layout, self.sender)
        self._stop = asyncio.Event()

    def accepts(self, event: InboundEvent) -> bool:
        # OWNER_ID unset means listen to everyone.
        owner = self.settings.owner_id
        if owner and event.turn.author_id != owner:
            return False
        # AGENT_NAME unset means listen to every message.
        name = self.settings.agent_name
        if name and not (event.mentions_self or name.lower() in event.turn.content.lower()):
            return False
        return True

    async def handle_event(self, event: InboundEvent) -> Optional[str]:
        if not self.accepts(event):
            return None
        try:
            return self.inbox.write(event.turn, event.conversation_id, event.thread_id)
        except Exception as e:
            logger.error(
                f"failed to write inbox file: {e}",
                extra={
                    "conversation_id": event.conversation_id,
                    "thread_id": event.thread_id,
                    "message_id": event.turn.external_id,
                },
            )
            return None

    def stop(self) -> None:
        self._stop.set()

    async def run(self) -> None:
        """Subscribe and poll until stop() is called; the in-flight pass is allowed to finish."""
        self.transport.subscribe(self.handle_event)
        logger.info(f"bridge started, root={self.layout.root}", extra={"transport": self.transport.platform})
        try:
            await self.poller.run(self.settings.poll_interval, self._stop)
        finally:
            self.transport.subscribe(None)
            logger.info("bridge stopped", extra={"transport": self.transport.platform})


def _install_signal_handlers(on_signal) -> None:
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(signum, on_signal, signum)
        except (NotImplementedError, RuntimeError):
            # Not supported on this platform/loop (e.g. Windows, non-main thread).
            pass


def make_transport(settings: BridgeSettings) -> Transport:
    if settings.platform == "discord":
        from .transports.discord import DiscordTransport

        return DiscordTransport(token=settings.require_token())
    raise ValueError(f"Unsupported platform: {settings.platform}")


async def serve(settings: BridgeSettings, transport: Optional[Transport] = None) -> None:
    transport = transport or make_transport(settings)
    await transport.connect()
    try:
        layout = await discover(transport, settings)
        bridge = MailboxBridge(transport, layout, settings)

        def on_signal(signum: int) -> None:
            logger.info(f"received signal {signum}, shutting down")
            bridge.stop()

        _install_signal_handlers(on_signal)
        await bridge.run()
    finally:
        await transport.disconnect()


async def run_backfill(settings: BridgeSettings, transport: Optional[Transport] = None) -> Dict[str, int]:
    transport = transport or make_transport(settings)
    await transport.connect()
    try:
        layout = await discover(transport, settings)
        counts = await HistoryBackfill(layout, transport).run()
        logger.info(f"backfill done: {sum(counts.values())} messages in {len(counts)} conversations")
        return counts
    finally:
        await transport.disconnect()


async def list_channels(settings: BridgeSettings, transport: Optional[Transport] = None) -> List[ConversationInfo]:
    transport = transport or make_transport(settings)
    await transport.connect()
    try:
        return await transport.list_conversations()
    finally:
        await transport.disconnect()
