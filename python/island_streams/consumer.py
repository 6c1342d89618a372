"""
WebSocket consumer delivering island action messages to subscribed pages.

A page opens one socket per stream channel (``ws/islands/<channel>/``) or a
bare socket (``ws/islands/``) and subscribes explicitly::

    {"type": "subscribe", "channel": "chat_123"}
    {"type": "unsubscribe", "channel": "chat_123"}
    {"type": "ping"}

Every message broadcast to a subscribed channel is forwarded as-is, in the
order the channel layer delivers it::

    {"action": "merge", "target": "message_7_island", "payload": {...}}
"""

import json
import logging
from typing import Any, Dict, Optional

from channels.generic.websocket import AsyncWebsocketConsumer
from django.core.serializers.json import DjangoJSONEncoder

from .broadcast import channel_group_name
from .config import config as islands_config
from .exceptions import InvalidChannelError
from .security import sanitize_for_log

logger = logging.getLogger(__name__)

# Close code sent when the channel named in the URL cannot be subscribed to.
CLOSE_INVALID_CHANNEL = 4400


class IslandStreamConsumer(AsyncWebsocketConsumer):
    """
    WebSocket consumer for island stream subscriptions.

    This consumer handles:
    - Subscribing the socket to stream channels (channel-layer groups)
    - Forwarding ``island.action`` channel events to the client
    - Leaving every group on disconnect
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._groups: Dict[str, str] = {}  # stream channel -> group name

    @property
    def subscribed_channels(self):
        return frozenset(self._groups)

    async def connect(self):
        """Accept the socket and subscribe to the channel named in the URL, if any."""
        await self.accept()

        channel = self.scope.get("url_route", {}).get("kwargs", {}).get("channel")
        if channel:
            error = await self._subscribe(channel)
            if error:
                logger.warning("Rejected island stream connection: %s", error)
                await self.send_error(error)
                await self.close(code=CLOSE_INVALID_CHANNEL)
                return

        await self.send_json({"type": "connect", "channels": sorted(self._groups)})

    async def disconnect(self, close_code):
        """Leave every subscribed group"""
        if self.channel_layer is not None:
            for group in self._groups.values():
                await self.channel_layer.group_discard(group, self.channel_name)
        self._groups.clear()

    async def receive(self, text_data=None, bytes_data=None):
        """Handle subscription management frames from the client"""
        raw = text_data if text_data is not None else bytes_data
        if raw is None:
            return

        max_msg_size = islands_config.get("max_message_size", 65536)
        raw_size = len(raw.encode("utf-8")) if isinstance(raw, str) else len(raw)
        if max_msg_size and raw_size > max_msg_size:
            logger.warning("Message too large (%d bytes, max %d)", raw_size, max_msg_size)
            await self.send_error(f"Message too large ({raw_size} bytes)")
            return

        try:
            data = json.loads(raw)
        except ValueError as e:
            logger.warning("Invalid JSON in island stream frame: %s", e)
            await self.send_error("Invalid message format")
            return
        if not isinstance(data, dict):
            await self.send_error("Invalid message format")
            return

        msg_type = data.get("type")
        if msg_type == "subscribe":
            error = await self._subscribe(data.get("channel"))
            if error:
                await self.send_error(error)
            else:
                await self.send_json({"type": "subscribed", "channel": data["channel"]})
        elif msg_type == "unsubscribe":
            channel = data.get("channel")
            try:
                channel_group_name(channel)
            except InvalidChannelError as e:
                await self.send_error(e.message)
                return
            await self._unsubscribe(channel)
            await self.send_json({"type": "unsubscribed", "channel": channel})
        elif msg_type == "ping":
            await self.send_json({"type": "pong"})
        else:
            logger.warning("Unknown message type: %s", sanitize_for_log(msg_type))
            await self.send_error(f"Unknown message type: {sanitize_for_log(msg_type)}")

    async def _subscribe(self, channel: Any) -> Optional[str]:
        """Join the group for ``channel``. Returns an error string on failure."""
        try:
            group = channel_group_name(channel)
        except InvalidChannelError as e:
            return e.message
        if self.channel_layer is None:
            return "Streaming unavailable: no channel layer configured"
        if channel not in self._groups:
            await self.channel_layer.group_add(group, self.channel_name)
            self._groups[channel] = group
            logger.debug("Socket %s subscribed to %s", self.channel_name, group)
        return None

    async def _unsubscribe(self, channel: Any) -> None:
        group = self._groups.pop(channel, None)
        if group and self.channel_layer is not None:
            await self.channel_layer.group_discard(group, self.channel_name)

    async def island_action(self, event):
        """
        Handle an ``island.action`` event from the channel layer.

        Forwards the wire message without the channel-layer ``type`` key.
        """
        await self.send_json(
            {
                "action": event.get("action"),
                "target": event.get("target"),
                "payload": event.get("payload", {}),
            }
        )

    async def send_error(self, error: str) -> None:
        await self.send_json({"type": "error", "error": error})

    async def send_json(self, data: Dict[str, Any]):
        """Send JSON message to client with Django type support"""
        await self.send(text_data=json.dumps(data, cls=DjangoJSONEncoder))
