"""
Exceptions raised by island_streams.

Server-side errors (bad channel names, unserializable payloads, transport
failures) propagate to the caller. Client-side parse errors are raised by
the message codec and caught by the action registry, which logs and drops
the offending message.
"""

from typing import Optional


class IslandStreamError(Exception):
    """Base exception for island stream errors."""

    def __init__(self, message: str, hint: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.hint = hint


class InvalidChannelError(IslandStreamError, ValueError):
    """Raised when a stream channel name cannot be mapped to a channel-layer group."""

    def __init__(self, channel: str, reason: str):
        message = f"Invalid stream channel {channel!r}: {reason}"
        hint = (
            "\n    Channel names may contain ASCII letters, digits, '_', '-' and '.'.\n"
            "    Example:\n"
            '        broadcast_island_merge("chat_42", target="message_7_island", delta={...})'
        )
        super().__init__(message, hint)
        self.channel = channel


class InvalidPayloadError(IslandStreamError, TypeError):
    """Raised when an outbound action carries a payload that is not a JSON object."""


class BroadcastError(IslandStreamError):
    """Raised when the channel layer fails to accept an outbound action message.

    The original exception is available as ``__cause__``. Nothing is retried.
    """

    def __init__(self, channel: str, message: str):
        super().__init__(f"Broadcast to channel {channel!r} failed: {message}")
        self.channel = channel


class MalformedMessageError(IslandStreamError, ValueError):
    """Raised when an inbound action message cannot be decoded."""


class UnknownActionError(MalformedMessageError):
    """Raised when an inbound action message names an action type we do not handle."""

    def __init__(self, action: object):
        super().__init__(f"Unknown island action: {action!r}")
        self.action = action


__all__ = [
    "IslandStreamError",
    "InvalidChannelError",
    "InvalidPayloadError",
    "BroadcastError",
    "MalformedMessageError",
    "UnknownActionError",
]
