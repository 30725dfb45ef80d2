"""
Error taxonomy for the mailbox bridge.

- NotFound: resource vanished; benign, treated as already handled.
- ChannelUnavailable / TransportError: transient; the outbox file stays in
  place and the next poll pass retries it.
- MalformedPath: not an outbox entry; foreign files are expected in the tree.
- ConfigurationError: fatal at startup, before any transport connection.
"""

from __future__ import annotations


class ScribeError(Exception):
    pass


class DeliveryError(ScribeError):
    pass


class NotFound(DeliveryError):
    pass


class ChannelUnavailable(DeliveryError):
    pass


class TransportError(DeliveryError):
    pass


class MalformedPath(ScribeError, ValueError):
    pass


class ConfigurationError(ScribeError):
    pass
