"""
Listener registration for collection consumers

A consumer mounts a listener to receive the current snapshot right away and a
fresh snapshot after every change of its collection kind or of the acting
identity. Each listener re-lists on its own; nothing is shared between
listeners.
"""

import logging
from typing import Callable, List

from models import CollectionItem
from collection_sync.notifier import IDENTITY_CHANGED
from collection_sync.store import CollectionStore

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[List[CollectionItem]], None]


class CollectionListener:
    """Subscription of one consumer to one collection store"""

    def __init__(self, store: CollectionStore, callback: SnapshotCallback):
        self._store = store
        self._callback = callback
        self._unsubscribers: List[Callable[[], None]] = []
        self.mounted = False

    async def mount(self):
        """Subscribe and deliver the first snapshot before returning"""
        if self.mounted:
            return
        self.mounted = True
        notifier = self._store.notifier
        self._unsubscribers = [
            notifier.subscribe(self._store.kind.name, self.refresh),
            notifier.subscribe(IDENTITY_CHANGED, self.refresh),
        ]
        logger.debug(f"Listener mounted on {self._store.kind.name}")
        await self.refresh()

    def unmount(self):
        self.mounted = False
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        logger.debug(f"Listener unmounted from {self._store.kind.name}")

    async def refresh(self):
        items = await self._store.list()
        # A snapshot that lands after unmount is dropped
        if self.mounted:
            self._callback(items)


async def listen(store: CollectionStore, callback: SnapshotCallback) -> Callable[[], None]:
    """
    Mount a listener on a store

    Args:
        store: Collection store to observe
        callback: Receives the full list on mount and after each change

    Returns:
        Callable: Unmount function
    """
    listener = CollectionListener(store, callback)
    await listener.mount()
    return listener.unmount
