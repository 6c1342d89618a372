"""
Streaming content into islands, chunk by chunk.

Combines the accumulator store with the broadcast dispatcher: each chunk is
appended to the target's buffer and the running content is broadcast as a
merge, so the container always holds the full text received so far.

Usage:
    from island_streams.streaming import IslandStream

    async def reply(chat, message):
        stream = IslandStream(f"chat_{chat.id}")
        target = f"message_{message.id}_island"
        async for token in llm_stream(message.prompt):
            await stream.begin_or_append(target, token)
        await stream.finalize(target)

Each call sends exactly one merge carrying ``content`` and ``streaming``
(key names configurable). Finalizing twice is harmless: the second call
sends ``{"content": "", "streaming": False}``.
"""

import logging
from typing import Any, Dict, Optional

from asgiref.sync import async_to_sync
from django.utils import timezone

from .accumulator import AccumulatorResult, AccumulatorStore, get_accumulator_store
from .broadcast import asend_merge, asend_replace, channel_group_name, validate_target
from .config import config as islands_config
from .messages import ActionMessage
from .signals import island_stream_finalized

logger = logging.getLogger(__name__)


def build_stream_delta(result: AccumulatorResult) -> Dict[str, Any]:
    """Merge delta broadcast for one accumulator step."""
    delta = {
        islands_config.get("content_key", "content"): result.content,
        islands_config.get("streaming_key", "streaming"): result.streaming,
    }
    if islands_config.get("include_timestamp", False):
        delta[islands_config.get("updated_at_key", "updated_at")] = timezone.now().isoformat()
    return delta


class IslandStream:
    """
    Streams content into islands subscribed to one channel.

    Args:
        channel: Stream channel name (validated immediately).
        store: Accumulator store to use; defaults to the process-wide store.
    """

    def __init__(self, channel: str, store: Optional[AccumulatorStore] = None):
        channel_group_name(channel)
        self.channel = channel
        self._store = store

    @property
    def store(self) -> AccumulatorStore:
        return self._store if self._store is not None else get_accumulator_store()

    async def append(self, target: str, chunk: Any = "", final: bool = False) -> AccumulatorResult:
        """
        Append ``chunk`` to ``target`` (or finalize it) and broadcast the result.

        The buffer is updated under the target's lock; the merge is sent after
        the lock is released. A failed send raises BroadcastError, but the
        buffer keeps the chunk. A rejected target never opens a session.
        """
        validate_target(target)
        result = self.store.append(target, chunk, final=final)
        await asend_merge(self.channel, target, build_stream_delta(result))
        if final:
            logger.debug("Island stream %s on %s closed", target, self.channel)
            island_stream_finalized.send(
                sender=None, channel=self.channel, target=target, content=result.content
            )
        return result

    async def begin_or_append(self, target: str, chunk: Any) -> str:
        """Append a chunk, opening a session on first use. Returns the content so far."""
        return (await self.append(target, chunk)).content

    async def finalize(self, target: str) -> str:
        """Mark ``target`` as done streaming. Returns its full content."""
        return (await self.append(target, final=True)).content

    async def replace(self, target: str, state: Dict[str, Any]) -> ActionMessage:
        """Push a complete new state to ``target``, bypassing the accumulator."""
        return await asend_replace(self.channel, target, state)

    def append_sync(self, target: str, chunk: Any = "", final: bool = False) -> AccumulatorResult:
        return async_to_sync(self.append)(target, chunk, final)

    def begin_or_append_sync(self, target: str, chunk: Any) -> str:
        return self.append_sync(target, chunk).content

    def finalize_sync(self, target: str) -> str:
        return self.append_sync(target, final=True).content

    def replace_sync(self, target: str, state: Dict[str, Any]) -> ActionMessage:
        return async_to_sync(self.replace)(target, state)


async def abroadcast_island_chunk(
    channel: str, *, target: str, content: Any, final: bool = False
) -> AccumulatorResult:
    """Async version of :func:`broadcast_island_chunk`."""
    return await IslandStream(channel).append(target, content, final=final)


def broadcast_island_chunk(
    channel: str, *, target: str, content: Any, final: bool = False
) -> AccumulatorResult:
    """
    Append a chunk of content to an island and broadcast the accumulated text.

    Args:
        channel: Stream channel name (e.g. "chat_123")
        target: Container id to update
        content: Chunk to append (ignored when ``final`` is true)
        final: Whether this closes the stream

    Example::

        from island_streams import broadcast_island_chunk, broadcast_island_complete

        for token in llm.stream(prompt):
            broadcast_island_chunk("chat_123", target="message_456_island", content=token)
        broadcast_island_complete("chat_123", target="message_456_island")
    """
    return async_to_sync(abroadcast_island_chunk)(
        channel, target=target, content=content, final=final
    )


async def abroadcast_island_complete(channel: str, *, target: str) -> AccumulatorResult:
    """Async version of :func:`broadcast_island_complete`."""
    return await abroadcast_island_chunk(channel, target=target, content="", final=True)


def broadcast_island_complete(channel: str, *, target: str) -> AccumulatorResult:
    """Close the stream for ``target`` and broadcast ``streaming: False`` with the full content."""
    return broadcast_island_chunk(channel, target=target, content="", final=True)


async def abroadcast_island_replace(
    channel: str, *, target: str, props: Dict[str, Any]
) -> ActionMessage:
    """Async version of :func:`broadcast_island_replace`."""
    return await asend_replace(channel, target, props)


def broadcast_island_replace(channel: str, *, target: str, props: Dict[str, Any]) -> ActionMessage:
    """
    Broadcast a full props replacement to an island.

    Example::

        broadcast_island_replace("chat_123", target="message_456_island",
                                 props={"content": "Updated", "streaming": False})
    """
    return async_to_sync(asend_replace)(channel, target, props)


async def abroadcast_island_merge(
    channel: str, *, target: str, delta: Dict[str, Any]
) -> ActionMessage:
    """Async version of :func:`broadcast_island_merge`."""
    return await asend_merge(channel, target, delta)


def broadcast_island_merge(channel: str, *, target: str, delta: Dict[str, Any]) -> ActionMessage:
    """Broadcast a partial props merge to an island; keys not in ``delta`` are left unchanged."""
    return async_to_sync(asend_merge)(channel, target, delta)
