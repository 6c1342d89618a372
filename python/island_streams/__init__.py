"""
island_streams: push props updates to component islands over Django Channels.

Server side::

    from island_streams import IslandStream, broadcast_island_replace

    stream = IslandStream("chat_123")
    await stream.begin_or_append("message_7_island", "Hel")
    await stream.begin_or_append("message_7_island", "lo")
    await stream.finalize("message_7_island")

    broadcast_island_replace("chat_123", target="message_7_island",
                             props={"content": "Done", "streaming": False})

Client side, see ``island_streams.client``.
"""

from .accumulator import AccumulatorStore, get_accumulator_store
from .broadcast import asend_merge, asend_replace, channel_group_name, send_merge, send_replace
from .exceptions import (
    BroadcastError,
    InvalidChannelError,
    InvalidPayloadError,
    IslandStreamError,
    MalformedMessageError,
    UnknownActionError,
)
from .messages import ActionMessage, ActionType, ChangeNotification
from .streaming import (
    IslandStream,
    abroadcast_island_chunk,
    abroadcast_island_complete,
    abroadcast_island_merge,
    abroadcast_island_replace,
    broadcast_island_chunk,
    broadcast_island_complete,
    broadcast_island_merge,
    broadcast_island_replace,
)

__version__ = "0.1.0"

__all__ = [
    "AccumulatorStore",
    "ActionMessage",
    "ActionType",
    "BroadcastError",
    "ChangeNotification",
    "InvalidChannelError",
    "InvalidPayloadError",
    "IslandStream",
    "IslandStreamError",
    "MalformedMessageError",
    "UnknownActionError",
    "abroadcast_island_chunk",
    "abroadcast_island_complete",
    "abroadcast_island_merge",
    "abroadcast_island_replace",
    "asend_merge",
    "asend_replace",
    "broadcast_island_chunk",
    "broadcast_island_complete",
    "broadcast_island_merge",
    "broadcast_island_replace",
    "channel_group_name",
    "get_accumulator_store",
    "send_merge",
    "send_replace",
]
