"""
Container state store: reads and writes the JSON props held in a
container's state attribute. Storage only; notification is the observer
bridge's job.
"""

import json
import logging
from typing import Any, Dict, Optional

from ..config import config as islands_config
from ..security import sanitize_for_log
from .dom import Document, Element

logger = logging.getLogger(__name__)


class ContainerStateStore:
    def __init__(self, document: Document, attribute: Optional[str] = None):
        self.document = document
        self.attribute = attribute or islands_config.get("state_attribute", "data-initial-state")

    def container(self, target: str) -> Optional[Element]:
        return self.document.get_element_by_id(target)

    def has_container(self, target: str) -> bool:
        return self.container(target) is not None

    def read(self, target: str) -> Dict[str, Any]:
        """
        Current props of ``target``.

        Returns an empty dict when the container is absent, has no state
        attribute, or the attribute does not hold a JSON object.
        """
        element = self.container(target)
        if element is None:
            return {}
        return self.read_element(element)

    def read_element(self, element: Element) -> Dict[str, Any]:
        raw = element.get_attribute(self.attribute)
        if not raw:
            return {}
        try:
            state = json.loads(raw)
        except (ValueError, RecursionError) as e:
            logger.warning("Unparsable state on container %s: %s", sanitize_for_log(element.id), e)
            return {}
        if not isinstance(state, dict):
            logger.warning(
                "State on container %s is a %s, not an object",
                sanitize_for_log(element.id),
                type(state).__name__,
            )
            return {}
        return state

    def write(
        self, target: str, state: Dict[str, Any], context: Optional[Dict[str, Any]] = None
    ) -> bool:
        """
        Serialize ``state`` into ``target``'s state attribute.

        Returns False (and changes nothing) when the container is absent.
        ``context`` is passed through to attribute observers.
        """
        element = self.container(target)
        if element is None:
            return False
        element.set_attribute(self.attribute, json.dumps(state), context=context)
        return True
