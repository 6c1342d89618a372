"""Django signals emitted by island_streams.

These signals allow other apps (metrics, audit trails, tests) to observe
outbound island traffic without wrapping the broadcast API.
"""

from django.dispatch import Signal

island_action_sent = Signal()
"""
Sent after the channel layer accepted an island action message.

Kwargs sent:
    sender   (None)
    channel  (str)           : stream channel name, without the group prefix
    message  (ActionMessage) : the message as delivered (payload normalized to plain JSON)
"""

island_stream_finalized = Signal()
"""
Sent when a streaming session for a target is closed.

Kwargs sent:
    sender   (None)
    channel  (str) : stream channel name
    target   (str) : container id
    content  (str) : full accumulated content ("" for a duplicate finalization)
"""
