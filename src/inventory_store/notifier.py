"""
Change notification for storage writes made by other contexts.

Writes made by the local context are never reported: the caller re-reads
right after its own commit.
"""

import logging
from typing import Callable, Dict, List, Optional

from .storage.kv import KeyValueStore, StorageEvent
from .storage.layout import KeyLayout


logger = logging.getLogger(__name__)

Callback = Callable[[StorageEvent], None]


class ChangeNotifier:
    """
    Observer for externally originated storage changes.

    Connect it to one or more event sources (anything with a
    watch(listener) -> unwatch method); subscribers are called for every
    change to the inventory keys that another context made.
    """

    def __init__(self, context_id: str, layout: Optional[KeyLayout] = None):
        """
        Args:
            context_id: the local context; its own writes are ignored
            layout: key families that count as inventory changes
        """
        self.context_id = context_id
        self.layout = layout or KeyLayout()
        self._subscribers: List[Callback] = []

    def subscribe(self, callback: Callback) -> Callable[[], None]:
        """
        Register a callback for external changes.

        Returns a function that unsubscribes it. Calling it more than once
        is harmless.
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def connect(self, source) -> Callable[[], None]:
        """Attach to an event source. Returns a function that detaches."""
        return source.watch(self.dispatch)

    def is_external(self, event: StorageEvent) -> bool:
        """Check if an event was made outside this context and concerns us."""
        if event.origin is not None and event.origin == self.context_id:
            return False
        # key None means the whole area was cleared.
        return event.key is None or self.layout.is_tracked_key(event.key)

    def dispatch(self, event: StorageEvent) -> bool:
        """
        Deliver an event to subscribers if it is external.

        A subscriber that raises is logged; the others still run.
        Returns True if the event was delivered.
        """
        if not self.is_external(event):
            return False

        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception:
                logger.exception("Change subscriber %r failed", callback)
        return True

    def subscriber_count(self) -> int:
        return len(self._subscribers)


class PollingChangeSource:
    """
    Change events for stores with no native notification.

    Each poll() compares storage contents with the previous poll and emits
    one event per changed key. Values the local store itself wrote are
    skipped.
    """

    def __init__(self, store: KeyValueStore, layout: Optional[KeyLayout] = None):
        self.store = store
        self.layout = layout or KeyLayout()
        self._seen: Dict[str, str] = self._read_all()
        self._listeners: List[Callback] = []

    def watch(self, listener: Callback) -> Callable[[], None]:
        self._listeners.append(listener)

        def unwatch() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unwatch

    def poll(self) -> List[StorageEvent]:
        """
        Check storage for changes since the last poll.

        Returns the events emitted.
        """
        current = self._read_all()
        events = []

        for key in sorted(set(self._seen) | set(current)):
            old = self._seen.get(key)
            new = current.get(key)
            if old == new:
                continue
            if new is not None and self.store.last_written(key) == new:
                continue
            events.append(StorageEvent(key, old, new, origin=None))

        self._seen = current

        for event in events:
            for listener in list(self._listeners):
                listener(event)

        return events

    def _read_all(self) -> Dict[str, str]:
        values = {}
        for key in self.store.keys():
            if not self.layout.is_tracked_key(key):
                continue
            value = self.store.get(key)
            if value is not None:
                values[key] = value
        return values
