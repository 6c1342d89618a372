"""
Observer bridge: turns state-attribute writes into change notifications.

One document-level attribute observer watches the state attribute of every
container, whoever writes it. For each change the bridge re-reads the
state, hands a ChangeNotification to every subscriber of that container
and dispatches a bubbling ``islands:props-updated`` event on it::

    bridge = ObserverBridge(document, store)
    sub = bridge.subscribe("message_7_island", lambda n: print(n.state))
    ...
    sub.unsubscribe()  # required when the component goes away

Subscriptions are held strongly until ``unsubscribe()`` is called.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from ..config import config as islands_config
from ..messages import ChangeNotification
from ..security import sanitize_for_log
from .dom import CustomEvent, Document, MutationRecord
from .state import ContainerStateStore

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[ChangeNotification], None]


class Subscription:
    """Handle returned by :meth:`ObserverBridge.subscribe`."""

    def __init__(self, bridge: "ObserverBridge", target: str, callback: ChangeCallback):
        self._bridge = bridge
        self.target = target
        self.callback = callback
        self.active = True

    def unsubscribe(self) -> None:
        """Stop receiving notifications. Safe to call more than once."""
        if self.active:
            self.active = False
            self._bridge._release(self)


class ObserverBridge:
    def __init__(
        self,
        document: Document,
        store: ContainerStateStore,
        event_name: Optional[str] = None,
    ):
        self.document = document
        self.store = store
        self.event_name = event_name or islands_config.get("event_name", "islands:props-updated")
        self._subscribers: Dict[str, List[Subscription]] = {}
        self._disconnect: Optional[Callable[[], None]] = document.observe_attributes(
            self._on_mutation, attribute_filter=[store.attribute]
        )

    def subscribe(self, target: str, callback: ChangeCallback) -> Subscription:
        """Call ``callback`` with a ChangeNotification after every state change on ``target``."""
        subscription = Subscription(self, target, callback)
        self._subscribers.setdefault(target, []).append(subscription)
        return subscription

    def subscriber_count(self, target: str) -> int:
        return len(self._subscribers.get(target, ()))

    def write(
        self, target: str, state: Dict[str, Any], delta: Optional[Dict[str, Any]] = None
    ) -> bool:
        """
        Write ``state`` to ``target`` and notify.

        ``delta`` is attached to the resulting notification; pass it for
        merge-origin writes only. Returns False if the container is absent.
        """
        context = {"delta": delta} if delta is not None else None
        return self.store.write(target, state, context=context)

    def close(self) -> None:
        """Stop observing the document and drop every subscription."""
        if self._disconnect is not None:
            self._disconnect()
            self._disconnect = None
        for subscriptions in self._subscribers.values():
            for subscription in subscriptions:
                subscription.active = False
        self._subscribers.clear()

    def _release(self, subscription: Subscription) -> None:
        subscriptions = self._subscribers.get(subscription.target)
        if not subscriptions:
            return
        if subscription in subscriptions:
            subscriptions.remove(subscription)
        if not subscriptions:
            del self._subscribers[subscription.target]

    def _on_mutation(self, record: MutationRecord) -> None:
        element = record.element
        delta = record.context.get("delta") if record.context else None
        notification = ChangeNotification(element.id, self.store.read_element(element), delta)

        for subscription in list(self._subscribers.get(element.id, ())):
            if not subscription.active:
                continue
            try:
                subscription.callback(notification)
            except Exception:
                logger.exception(
                    "Island subscriber for %s raised", sanitize_for_log(element.id)
                )

        element.dispatch_event(CustomEvent(self.event_name, notification.as_detail()))
