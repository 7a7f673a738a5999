"""
Synchronized remote collections

Client-side core that keeps the cart and wishlist in sync across every
consumer that listens to them, for signed-in users and guests alike.
"""

from collection_sync.context import SyncContext, create_context
from collection_sync.identity import GUEST, Authenticated, Guest, Session
from collection_sync.listeners import CollectionListener, listen
from collection_sync.notifier import IDENTITY_CHANGED, ChangeNotifier
from collection_sync.store import CollectionStore

__all__ = [
    'SyncContext',
    'create_context',
    'GUEST',
    'Authenticated',
    'Guest',
    'Session',
    'CollectionListener',
    'listen',
    'IDENTITY_CHANGED',
    'ChangeNotifier',
    'CollectionStore',
]
