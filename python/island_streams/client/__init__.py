"""
Client-side runtime for island streams: page model, container state store,
observer bridge and action registry.
"""

from .actions import ActionRegistry
from .dom import CustomEvent, Document, Element, MutationRecord
from .observer import ObserverBridge, Subscription
from .runtime import IslandInstance, IslandRuntime, StreamingState
from .state import ContainerStateStore

__all__ = [
    "ActionRegistry",
    "ContainerStateStore",
    "CustomEvent",
    "Document",
    "Element",
    "IslandInstance",
    "IslandRuntime",
    "MutationRecord",
    "ObserverBridge",
    "StreamingState",
    "Subscription",
]
