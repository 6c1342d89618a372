"""
Client runtime wiring for one page.

``IslandRuntime`` owns the state store, the observer bridge and the action
registry of a document. Transports feed it wire messages through
``receive()``; component instances mounted with ``mount()`` re-derive their
props from the container on every change.

Example::

    runtime = IslandRuntime(Document.from_html(rendered_page))
    message = runtime.mount("message_7_island", render_message)

    runtime.receive({"action": "merge", "target": "message_7_island",
                     "payload": {"content": "Hel", "streaming": True}})
    message.props  # {"content": "Hel", "streaming": True, ...}

    message.unmount()
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

from ..messages import ChangeNotification
from ..security import sanitize_for_log
from .actions import ActionRegistry
from .dom import CustomEvent, Document
from .observer import ObserverBridge, Subscription
from .state import ContainerStateStore

logger = logging.getLogger(__name__)

Component = Callable[[Dict[str, Any]], Any]


class IslandInstance:
    """
    A live component instance bound to one container.

    ``props`` is a cache of the container's state, refreshed by the observer
    bridge; ``component`` (if given) is called with the new props each time.
    """

    def __init__(self, runtime: "IslandRuntime", target: str, component: Optional[Component] = None):
        self.target = target
        self.component = component
        self.props: Dict[str, Any] = runtime.store.read(target)
        self.last_delta: Optional[Dict[str, Any]] = None
        self.render_count = 0
        self._runtime = runtime
        self._subscription: Optional[Subscription] = runtime.bridge.subscribe(target, self._on_change)
        self._render()

    @property
    def mounted(self) -> bool:
        return self._subscription is not None and self._subscription.active

    def unmount(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        self._runtime._forget(self)

    def _on_change(self, notification: ChangeNotification) -> None:
        self.props = notification.state
        self.last_delta = notification.delta
        self._render()

    def _render(self) -> None:
        self.render_count += 1
        if self.component is not None:
            self.component(self.props)


class IslandRuntime:
    def __init__(
        self,
        document: Optional[Document] = None,
        state_attribute: Optional[str] = None,
        event_name: Optional[str] = None,
    ):
        self.document = document if document is not None else Document()
        self.store = ContainerStateStore(self.document, state_attribute)
        self.bridge = ObserverBridge(self.document, self.store, event_name)
        self.actions = ActionRegistry(self.store, self.bridge)
        self._instances: List[IslandInstance] = []

    @property
    def instances(self) -> List[IslandInstance]:
        return list(self._instances)

    def receive(self, message: Any) -> bool:
        """Transport entry point: apply one wire message. Never raises for bad messages."""
        return self.actions.dispatch(message)

    def receive_many(self, messages: Iterable[Any]) -> int:
        """Apply messages in order; returns how many changed a container."""
        return sum(1 for message in messages if self.receive(message))

    def mount(self, target: str, component: Optional[Component] = None) -> IslandInstance:
        if not self.store.has_container(target):
            logger.warning("Mounting island on missing container %s", sanitize_for_log(target))
        instance = IslandInstance(self, target, component)
        self._instances.append(instance)
        return instance

    def props(self, target: str) -> Dict[str, Any]:
        return self.store.read(target)

    def update_props(self, target: str, props: Dict[str, Any]) -> bool:
        """
        Replace ``target``'s props from local code (e.g. persisting component
        state before the page is cached). Notifies like any other write.
        """
        if not self.bridge.write(target, dict(props)):
            logger.warning("Container %s not found for update", sanitize_for_log(target))
            return False
        return True

    def close(self) -> None:
        for instance in list(self._instances):
            instance.unmount()
        self.bridge.close()

    def _forget(self, instance: IslandInstance) -> None:
        if instance in self._instances:
            self._instances.remove(instance)


class StreamingState:
    """
    Event-driven copy of one container's state.

    Listens to the document's change event instead of the bridge and keeps
    its own state: merge notifications apply their delta, other
    notifications replace the state wholesale. Call ``close()`` when done.
    """

    def __init__(self, runtime: IslandRuntime, target: str, initial: Optional[Dict[str, Any]] = None):
        self.target = target
        self.state: Dict[str, Any] = dict(initial or {})
        self._document = runtime.document
        self._event_name = runtime.bridge.event_name
        self._document.add_event_listener(self._event_name, self._on_event)

    def _on_event(self, event: CustomEvent) -> None:
        if event.detail.get("target") != self.target:
            return
        delta = event.detail.get("delta")
        if delta is not None:
            self.state = {**self.state, **delta}
        else:
            self.state = dict(event.detail.get("state", {}))

    def close(self) -> None:
        self._document.remove_event_listener(self._event_name, self._on_event)
