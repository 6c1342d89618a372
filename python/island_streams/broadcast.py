"""
Broadcast dispatcher: sends island action messages to a stream channel.

A stream channel is a named Channels group. Every consumer subscribed to it
(see ``island_streams.consumer``) receives each message in send order.

Works from any synchronous context (Celery tasks, management commands,
Django signals) through the ``send_*`` functions, and from async code
through the ``asend_*`` coroutines.

Sending is fire-and-forget: nothing is retried. A channel layer that is
missing or refuses the message raises BroadcastError to the caller.
"""

import json
import logging
import re
from typing import Any, Dict

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.core.serializers.json import DjangoJSONEncoder

from .config import config as islands_config
from .exceptions import BroadcastError, InvalidChannelError, InvalidPayloadError
from .messages import ActionMessage
from .security import sanitize_for_log
from .signals import island_action_sent

logger = logging.getLogger(__name__)

_CHANNEL_NAME_RE = re.compile(r"^[A-Za-z0-9_.\-]+$")

# Channels rejects group names of this length or longer.
MAX_GROUP_NAME_LENGTH = 100


def channel_group_name(channel: str) -> str:
    """Return the channel-layer group name for a stream channel."""
    if not isinstance(channel, str) or not channel:
        raise InvalidChannelError(str(channel), "channel name must be a non-empty string")
    if not _CHANNEL_NAME_RE.match(channel):
        raise InvalidChannelError(channel, "channel name contains unsupported characters")
    group = f"{islands_config.get('group_prefix', 'island_stream_')}{channel}"
    if len(group) >= MAX_GROUP_NAME_LENGTH:
        raise InvalidChannelError(
            channel, f"group name must be shorter than {MAX_GROUP_NAME_LENGTH} characters"
        )
    return group


def validate_target(target: str) -> None:
    """Raise InvalidPayloadError unless ``target`` is a usable container id."""
    if not isinstance(target, str) or not target:
        raise InvalidPayloadError(f"Island target must be a non-empty string, got {target!r}")


def _validate(target: str, payload: Dict[str, Any]) -> None:
    validate_target(target)
    if not isinstance(payload, dict):
        raise InvalidPayloadError(
            f"Island payload must be a dict, got {type(payload).__name__}"
        )
    try:
        json.dumps(payload, cls=DjangoJSONEncoder)
    except (TypeError, ValueError) as e:
        raise InvalidPayloadError(f"Island payload is not JSON-serializable: {e}") from e


def _normalize(payload: Dict[str, Any]) -> Dict[str, Any]:
    # Round-trip so datetimes, Decimals and UUIDs reach every channel layer as plain JSON.
    return json.loads(json.dumps(payload, cls=DjangoJSONEncoder))


async def asend(channel: str, message: ActionMessage) -> ActionMessage:
    """
    Send an already-built action message to every subscriber of ``channel``.

    Raises:
        InvalidChannelError: ``channel`` cannot be used as a group name.
        InvalidPayloadError: target or payload is unusable.
        BroadcastError: no channel layer is configured, or it rejected the message.
    """
    group = channel_group_name(channel)
    _validate(message.target, message.payload)
    message = ActionMessage(message.action, message.target, _normalize(message.payload))

    channel_layer = get_channel_layer()
    if channel_layer is None:
        raise BroadcastError(channel, "no channel layer configured (set CHANNEL_LAYERS)")

    try:
        await channel_layer.group_send(group, message.to_channel_event())
    except Exception as e:
        logger.error(
            "Island %s to %s on channel %s failed: %s",
            message.action.value,
            sanitize_for_log(message.target),
            sanitize_for_log(channel),
            e,
        )
        raise BroadcastError(channel, str(e)) from e

    logger.debug(
        "Sent island %s to %s on channel %s",
        message.action.value,
        sanitize_for_log(message.target),
        sanitize_for_log(channel),
    )
    island_action_sent.send(sender=None, channel=channel, message=message)
    return message


async def asend_merge(channel: str, target: str, delta: Dict[str, Any]) -> ActionMessage:
    """
    Send a partial update: keys in ``delta`` overwrite the container's
    current props, every other key is left alone.
    """
    return await asend(channel, ActionMessage.merge(target, delta))


async def asend_replace(channel: str, target: str, state: Dict[str, Any]) -> ActionMessage:
    """
    Send a complete new state: the container's props become exactly ``state``.

    Needs no streaming session; use it for one-shot updates.
    """
    return await asend(channel, ActionMessage.replace(target, state))


def send_merge(channel: str, target: str, delta: Dict[str, Any]) -> ActionMessage:
    """
    Synchronous version of :func:`asend_merge`.

    Example::

        from island_streams.broadcast import send_merge

        @shared_task
        def mark_read(message_id):
            send_merge("inbox", f"message_{message_id}_island", {"unread": False})
    """
    return async_to_sync(asend)(channel, ActionMessage.merge(target, delta))


def send_replace(channel: str, target: str, state: Dict[str, Any]) -> ActionMessage:
    """Synchronous version of :func:`asend_replace`."""
    return async_to_sync(asend)(channel, ActionMessage.replace(target, state))
