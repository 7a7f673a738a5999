"""
Application-lifetime context for synchronized collections

Owns the local storage, the HTTP client, the session provider and cache, the
change notifier, and one collection store per kind. Tear it down with
`aclose()` (or `async with`) to release everything.
"""

import logging
from typing import Callable, Dict, Optional

import httpx

import config
from models import CART, COLLECTION_KINDS, WISHLIST
from collection_sync.adapters import LocalStorageAdapter, RemoteBackendAdapter
from collection_sync.identity import IdentityResolver, Session, SessionCache, SessionProvider
from collection_sync.listeners import SnapshotCallback, listen
from collection_sync.notifier import IDENTITY_CHANGED, ChangeNotifier
from collection_sync.storage import LocalStorage
from collection_sync.store import CollectionStore

logger = logging.getLogger(__name__)


class SyncContext:
    """Wiring of every synchronized collection in the application"""

    def __init__(self, storage: LocalStorage, client: httpx.AsyncClient, hint_ttl: float = None):
        self.storage = storage
        self.client = client
        self.notifier = ChangeNotifier()
        self.session = SessionProvider(storage)
        self.session_cache = SessionCache(storage, ttl=hint_ttl)
        self.resolver = IdentityResolver(self.session, self.session_cache)
        self._unsubscribe_session = self.session.subscribe(self._on_session_change)

        self.stores: Dict[str, CollectionStore] = {
            name: CollectionStore(
                kind,
                self.resolver,
                RemoteBackendAdapter(kind, client, self.session.id_token),
                LocalStorageAdapter(kind, storage),
                self.notifier
            )
            for name, kind in COLLECTION_KINDS.items()
        }

    @property
    def cart(self) -> CollectionStore:
        return self.stores[CART.name]

    @property
    def wishlist(self) -> CollectionStore:
        return self.stores[WISHLIST.name]

    def _on_session_change(self, session: Optional[Session]):
        self.session_cache.invalidate()
        self.notifier.notify(IDENTITY_CHANGED)

    async def listen(self, kind: str, callback: SnapshotCallback) -> Callable[[], None]:
        return await listen(self.stores[kind], callback)

    async def aclose(self):
        self._unsubscribe_session()
        await self.notifier.drain()
        self.notifier.clear()
        await self.client.aclose()
        self.storage.close()
        logger.info("Collection sync context closed")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
        return False


def create_context(
    base_url: str = None,
    storage_path: str = None,
    timeout: float = None,
    transport: httpx.AsyncBaseTransport = None,
    hint_ttl: float = None
) -> SyncContext:
    """
    Build a SyncContext from configuration

    Args:
        base_url: Collections API root, defaults to API_BASE_URL
        storage_path: SQLite file for guest data, defaults to LOCAL_STORAGE_PATH
        timeout: HTTP timeout in seconds, defaults to REQUEST_TIMEOUT
        transport: Optional httpx transport (tests route requests in-process)
        hint_ttl: Identity hint cache TTL, defaults to SESSION_HINT_TTL

    Returns:
        SyncContext: Ready-to-use context
    """
    client = httpx.AsyncClient(
        base_url=base_url or config.API_BASE_URL,
        timeout=config.REQUEST_TIMEOUT if timeout is None else timeout,
        transport=transport
    )
    storage = LocalStorage(storage_path or config.LOCAL_STORAGE_PATH)
    logger.info(f"Collection sync context using {client.base_url} and {storage.path}")
    return SyncContext(storage, client, hint_ttl=hint_ttl)
