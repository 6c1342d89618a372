"""
Minimal page model for the island client runtime.

Holds the containers of one page (elements addressed by id), reports
attribute mutations synchronously to document observers, and dispatches
events that bubble from an element to its document. Everything runs to
completion on the caller's thread.
"""

import logging
from dataclasses import dataclass, field
from html.parser import HTMLParser
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

logger = logging.getLogger(__name__)


@dataclass
class CustomEvent:
    type: str
    detail: Dict[str, Any] = field(default_factory=dict)
    bubbles: bool = True
    target: Optional["Element"] = None


@dataclass(frozen=True)
class MutationRecord:
    """One attribute change. ``context`` carries writer-supplied data (e.g. a merge delta)."""

    element: "Element"
    attribute_name: str
    old_value: Optional[str]
    context: Optional[Dict[str, Any]] = None


EventListener = Callable[[CustomEvent], None]
MutationCallback = Callable[[MutationRecord], None]


class Element:
    def __init__(self, id: str, attributes: Optional[Dict[str, str]] = None, tag: str = "div"):
        self.id = id
        self.tag = tag
        self._attributes: Dict[str, str] = dict(attributes or {})
        self._listeners: Dict[str, List[EventListener]] = {}
        self.document: Optional["Document"] = None

    def __repr__(self):
        return f"<Element {self.tag}#{self.id}>"

    @property
    def attributes(self) -> Dict[str, str]:
        return dict(self._attributes)

    def get_attribute(self, name: str) -> Optional[str]:
        return self._attributes.get(name)

    def set_attribute(self, name: str, value: str, context: Optional[Dict[str, Any]] = None) -> None:
        old_value = self._attributes.get(name)
        self._attributes[name] = str(value)
        if self.document is not None:
            self.document._notify_mutation(MutationRecord(self, name, old_value, context))

    def remove_attribute(self, name: str) -> None:
        if name not in self._attributes:
            return
        old_value = self._attributes.pop(name)
        if self.document is not None:
            self.document._notify_mutation(MutationRecord(self, name, old_value))

    def add_event_listener(self, event_type: str, listener: EventListener) -> None:
        self._listeners.setdefault(event_type, []).append(listener)

    def remove_event_listener(self, event_type: str, listener: EventListener) -> None:
        listeners = self._listeners.get(event_type, [])
        if listener in listeners:
            listeners.remove(listener)

    def dispatch_event(self, event: CustomEvent) -> None:
        event.target = self
        _call_listeners(self._listeners.get(event.type, []), event)
        if event.bubbles and self.document is not None:
            self.document._deliver(event)


class Document:
    """
    The set of containers currently on a page.

    Ids are unique: appending an element whose id is already present
    detaches the previous holder, as a re-render would.
    """

    def __init__(self, elements: Iterable[Element] = ()):
        self._elements: Dict[str, Element] = {}
        self._observers: List[tuple] = []
        self._listeners: Dict[str, List[EventListener]] = {}
        for element in elements:
            self.append(element)

    def __contains__(self, element_id: str) -> bool:
        return element_id in self._elements

    def __iter__(self):
        return iter(list(self._elements.values()))

    def get_element_by_id(self, element_id: str) -> Optional[Element]:
        return self._elements.get(element_id)

    def append(self, element: Element) -> Element:
        previous = self._elements.get(element.id)
        if previous is not None and previous is not element:
            previous.document = None
        element.document = self
        self._elements[element.id] = element
        return element

    def create_element(self, element_id: str, attributes: Optional[Dict[str, str]] = None, tag: str = "div") -> Element:
        return self.append(Element(element_id, attributes, tag))

    def remove(self, element: Union[Element, str]) -> Optional[Element]:
        element_id = element if isinstance(element, str) else element.id
        removed = self._elements.get(element_id)
        if removed is None or (not isinstance(element, str) and removed is not element):
            return None
        del self._elements[element_id]
        removed.document = None
        return removed

    def observe_attributes(
        self, callback: MutationCallback, attribute_filter: Optional[Iterable[str]] = None
    ) -> Callable[[], None]:
        """
        Call ``callback`` for every attribute change on any attached element.

        Returns a function that disconnects the observer.
        """
        entry = (callback, frozenset(attribute_filter) if attribute_filter is not None else None)
        self._observers.append(entry)

        def disconnect() -> None:
            if entry in self._observers:
                self._observers.remove(entry)

        return disconnect

    def add_event_listener(self, event_type: str, listener: EventListener) -> None:
        self._listeners.setdefault(event_type, []).append(listener)

    def remove_event_listener(self, event_type: str, listener: EventListener) -> None:
        listeners = self._listeners.get(event_type, [])
        if listener in listeners:
            listeners.remove(listener)

    def dispatch_event(self, event: CustomEvent) -> None:
        self._deliver(event)

    def _deliver(self, event: CustomEvent) -> None:
        _call_listeners(self._listeners.get(event.type, []), event)

    def _notify_mutation(self, record: MutationRecord) -> None:
        for callback, attribute_filter in list(self._observers):
            if attribute_filter is not None and record.attribute_name not in attribute_filter:
                continue
            callback(record)

    @classmethod
    def from_html(cls, html: str) -> "Document":
        """Build a document from rendered markup; every element with an ``id`` becomes a container."""
        parser = _ContainerParser()
        parser.feed(html)
        parser.close()
        return cls(parser.elements)


def _call_listeners(listeners: List[EventListener], event: CustomEvent) -> None:
    for listener in list(listeners):
        try:
            listener(event)
        except Exception:
            logger.exception("Listener for %s raised", event.type)


class _ContainerParser(HTMLParser):
    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.elements: List[Element] = []

    def handle_starttag(self, tag, attrs):
        attributes = {name: value if value is not None else "" for name, value in attrs}
        element_id = attributes.pop("id", None)
        if element_id:
            self.elements.append(Element(element_id, attributes, tag))

    handle_startendtag = handle_starttag
