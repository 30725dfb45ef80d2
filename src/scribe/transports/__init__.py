"""
Chat transports.

- discord: discord.py Gateway client (imported lazily by the bridge)
- memory: in-process transport for dry runs and tests
"""

from .base import EventHandler, Transport
from .memory import MemoryTransport

__all__ = ["EventHandler", "MemoryTransport", "Transport"]
