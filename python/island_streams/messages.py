"""
Wire types shared by the server dispatcher and the client runtime.

An action message addresses one container (the *target*) and carries
either a partial update (``merge``) or a complete new state (``replace``)::

    {"action": "merge", "target": "message_7_island", "payload": {"content": "Hel"}}

Receivers ignore any other top-level fields.
"""

import enum
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

from .exceptions import MalformedMessageError, UnknownActionError

# Channel-layer event type; Channels dispatches it to ``island_action()`` on consumers.
CHANNEL_EVENT_TYPE = "island.action"


class ActionType(str, enum.Enum):
    MERGE = "merge"
    REPLACE = "replace"


@dataclass(frozen=True)
class ActionMessage:
    """One addressed update for a single container."""

    action: ActionType
    target: str
    payload: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def merge(cls, target: str, delta: Dict[str, Any]) -> "ActionMessage":
        return cls(ActionType.MERGE, target, delta)

    @classmethod
    def replace(cls, target: str, state: Dict[str, Any]) -> "ActionMessage":
        return cls(ActionType.REPLACE, target, state)

    def to_wire(self) -> Dict[str, Any]:
        return {
            "action": self.action.value,
            "target": self.target,
            "payload": self.payload,
        }

    def to_channel_event(self) -> Dict[str, Any]:
        """Wire message wrapped for ``channel_layer.group_send``."""
        return {"type": CHANNEL_EVENT_TYPE, **self.to_wire()}

    @classmethod
    def from_wire(cls, data: Union[str, bytes, Dict[str, Any]]) -> "ActionMessage":
        """
        Decode a wire message.

        ``data`` may be the decoded dict or its JSON text. The payload may
        itself be JSON text, which is how attribute-based transports carry it.

        Raises:
            UnknownActionError: ``action`` is not a known action type.
            MalformedMessageError: anything else about the message is unusable.
        """
        if isinstance(data, (str, bytes)):
            try:
                data = json.loads(data)
            except (ValueError, RecursionError) as e:
                raise MalformedMessageError(f"Action message is not valid JSON: {e}") from e

        if not isinstance(data, dict):
            raise MalformedMessageError(
                f"Action message must be a JSON object, got {type(data).__name__}"
            )

        raw_action = data.get("action")
        try:
            action = ActionType(raw_action)
        except ValueError:
            raise UnknownActionError(raw_action) from None

        target = data.get("target")
        if not isinstance(target, str) or not target:
            raise MalformedMessageError(f"Action message has no usable target: {target!r}")

        return cls(action, target, parse_payload(data.get("payload")))


def parse_payload(raw: Any) -> Dict[str, Any]:
    """
    Return ``raw`` as a dict, decoding JSON text if needed.

    A dict handed in directly must also serialize back to JSON, since it is
    written into a state attribute as is.
    """
    decoded = isinstance(raw, (str, bytes))
    if decoded:
        try:
            raw = json.loads(raw)
        except (ValueError, RecursionError) as e:
            raise MalformedMessageError(f"Action payload is not valid JSON: {e}") from e
    if not isinstance(raw, dict):
        raise MalformedMessageError(
            f"Action payload must be a JSON object, got {type(raw).__name__}"
        )
    if not decoded:
        try:
            json.dumps(raw)
        except (TypeError, ValueError, RecursionError) as e:
            raise MalformedMessageError(f"Action payload is not JSON-serializable: {e}") from e
    return raw


@dataclass(frozen=True)
class ChangeNotification:
    """
    Published after every write to a container's state attribute.

    ``delta`` is set only when the write came from a merge.
    """

    target: str
    state: Dict[str, Any]
    delta: Optional[Dict[str, Any]] = None

    def as_detail(self) -> Dict[str, Any]:
        detail = {"target": self.target, "state": self.state}
        if self.delta is not None:
            detail["delta"] = self.delta
        return detail
