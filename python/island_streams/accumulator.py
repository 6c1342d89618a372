"""
Per-target accumulation of streamed content.

While a streaming session is open for a target, every chunk is appended to
that target's buffer and the running content is handed back to the caller
(which broadcasts it). Finalizing returns the complete content and drops
the buffer.

Each target gets its own lock, created lazily on the first chunk and
discarded on finalization, so unrelated targets never contend. The store
does no I/O: callers broadcast after ``append`` returns, outside the lock.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Optional

logger = logging.getLogger(__name__)


@dataclass
class AccumulatorEntry:
    """Buffered content for one target during an open streaming session."""

    content: str = ""
    streaming: bool = True


@dataclass(frozen=True)
class AccumulatorResult:
    """Outcome of one ``append``: the content to broadcast and whether the session is still open."""

    target: str
    content: str
    streaming: bool


class _TargetUnit:
    """Lock and entry for one target. ``closed`` is set once the session is finalized."""

    __slots__ = ("lock", "entry", "closed")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.entry = AccumulatorEntry()
        self.closed = False


class AccumulatorStore:
    """
    Thread-safe store of open streaming sessions, keyed by target.

    Data structure::

        _units = {
            "message_7_island": _TargetUnit(lock, AccumulatorEntry("Hel", True)),
            ...
        }

    ``_registry_lock`` only guards the map itself; reading and modifying a
    buffer happens under that target's own lock.
    A target lock may be held while taking the registry lock, never the
    reverse.

    Limitations:
        - Single-process only: a session must be fed from one worker.
        - Open sessions are lost on restart.
    """

    def __init__(self) -> None:
        self._units: Dict[str, _TargetUnit] = {}
        self._registry_lock = threading.Lock()

    def _unit_for(self, target: str) -> _TargetUnit:
        with self._registry_lock:
            unit = self._units.get(target)
            if unit is None:
                unit = _TargetUnit()
                self._units[target] = unit
            return unit

    def _retire(self, target: str, unit: _TargetUnit) -> None:
        with self._registry_lock:
            if self._units.get(target) is unit:
                del self._units[target]

    def append(self, target: str, chunk: Any = "", final: bool = False) -> AccumulatorResult:
        """
        Apply one chunk (or the finalization) for ``target``.

        Args:
            target: Container id the content streams into.
            chunk: Text to append; ``None`` appends nothing, other types go through ``str()``.
                Ignored when ``final`` is true.
            final: Close the session and return its complete content.

        Returns:
            AccumulatorResult with the running content. A finalization of a
            target with no open session is a no-op returning empty content.
        """
        if not final:
            text = "" if chunk is None else str(chunk)
            while True:
                unit = self._unit_for(target)
                with unit.lock:
                    # Finalized while we waited for the lock: start a new session.
                    if unit.closed:
                        continue
                    unit.entry.content = unit.entry.content + text
                    return AccumulatorResult(target, unit.entry.content, True)

        with self._registry_lock:
            unit = self._units.get(target)
        if unit is None:
            logger.debug("Finalize for %s with no open stream (duplicate or never opened)", target)
            return AccumulatorResult(target, "", False)

        with unit.lock:
            if unit.closed:
                return AccumulatorResult(target, "", False)
            unit.closed = True
            unit.entry.streaming = False
            content = unit.entry.content
            # Retired before the lock is released, so a waiter that wakes on
            # this unit gets a fresh one from _unit_for.
            self._retire(target, unit)
        logger.debug("Stream for %s finalized (%d chars)", target, len(content))
        return AccumulatorResult(target, content, False)

    def begin_or_append(self, target: str, chunk: Any) -> str:
        """Append ``chunk`` to ``target``'s open session, opening one if needed."""
        return self.append(target, chunk).content

    def finalize(self, target: str) -> str:
        """Close ``target``'s session and return its full content ("" if none was open)."""
        return self.append(target, final=True).content

    def content(self, target: str) -> Optional[str]:
        """Content buffered so far for ``target``, or None when no session is open."""
        with self._registry_lock:
            unit = self._units.get(target)
        if unit is None:
            return None
        with unit.lock:
            return None if unit.closed else unit.entry.content

    def is_open(self, target: str) -> bool:
        return self.content(target) is not None

    def open_targets(self) -> FrozenSet[str]:
        with self._registry_lock:
            return frozenset(self._units)

    def clear(self) -> None:
        """Drop every open session without broadcasting anything."""
        with self._registry_lock:
            units = list(self._units.values())
            self._units.clear()
        for unit in units:
            with unit.lock:
                unit.closed = True


_store: Optional[AccumulatorStore] = None
_store_lock = threading.Lock()


def get_accumulator_store() -> AccumulatorStore:
    """Get or create the process-wide accumulator store."""
    global _store
    with _store_lock:
        if _store is None:
            _store = AccumulatorStore()
        return _store


def set_accumulator_store(store: AccumulatorStore) -> None:
    """Manually set the accumulator store (useful for testing)."""
    global _store
    with _store_lock:
        _store = store


def reset_accumulator_store() -> None:
    """Reset to force a fresh store on next access."""
    global _store
    with _store_lock:
        _store = None
