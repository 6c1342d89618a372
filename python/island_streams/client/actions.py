"""
Action registry: applies incoming island action messages to containers.

- ``merge``: shallow-merge the payload over the container's current props.
- ``replace``: the payload becomes the container's entire props.

Messages for containers that are not on the page are dropped, never
queued. Malformed messages and unknown actions are logged and dropped;
the registry keeps processing whatever arrives next.
"""

import logging
from typing import Any, Callable, Dict, Union

from django.core.exceptions import ImproperlyConfigured

from ..exceptions import MalformedMessageError, UnknownActionError
from ..messages import ActionMessage, ActionType
from ..security import sanitize_for_log
from .observer import ObserverBridge
from .state import ContainerStateStore

logger = logging.getLogger(__name__)

ActionHandler = Callable[[ActionMessage], bool]


class ActionRegistry:
    """
    Dispatches action messages to one handler per ActionType.

    The handler table must cover every ActionType; a registry (or subclass)
    missing one fails at construction rather than dropping those messages.
    """

    def __init__(self, store: ContainerStateStore, bridge: ObserverBridge):
        self.store = store
        self.bridge = bridge
        self._handlers = self.handler_table()
        missing = [action.value for action in ActionType if action not in self._handlers]
        if missing:
            raise ImproperlyConfigured(
                f"{type(self).__name__} has no handler for action(s): {', '.join(missing)}"
            )

    def handler_table(self) -> Dict[ActionType, ActionHandler]:
        return {
            ActionType.MERGE: self.handle_merge,
            ActionType.REPLACE: self.handle_replace,
        }

    def dispatch(self, message: Union[ActionMessage, Dict[str, Any], str, bytes]) -> bool:
        """
        Apply one message.

        Returns True when a container's state was written, False when the
        message was dropped.
        """
        if isinstance(message, ActionMessage):
            # Built in-process: validated the same way as wire input.
            message = {"action": message.action, "target": message.target, "payload": message.payload}
        try:
            message = ActionMessage.from_wire(message)
        except UnknownActionError as e:
            logger.warning("Rejected island message: %s", e.message)
            return False
        except MalformedMessageError as e:
            logger.warning("Rejected malformed island message: %s", e.message)
            return False
        return self._handlers[message.action](message)

    def handle_merge(self, message: ActionMessage) -> bool:
        if not self.store.has_container(message.target):
            logger.warning("Target container not found: %s", sanitize_for_log(message.target))
            return False
        merged = {**self.store.read(message.target), **message.payload}
        return self.bridge.write(message.target, merged, delta=message.payload)

    def handle_replace(self, message: ActionMessage) -> bool:
        if not self.store.has_container(message.target):
            logger.warning("Target container not found: %s", sanitize_for_log(message.target))
            return False
        return self.bridge.write(message.target, dict(message.payload))
