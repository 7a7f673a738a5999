"""
Collection Store

One generic store per collection kind. Each call resolves the acting identity,
picks the matching backend adapter, and converts every failure into an empty
list or a failed `OperationResult`. The change signal is broadcast only after
the backend has confirmed a mutation.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Union

from pydantic import ValidationError

from error_handling import ErrorHandler, MarketplaceError
from models import CollectionItem, CollectionKind, OperationResult, utcnow
from collection_sync.adapters import BackendAdapter
from collection_sync.identity import Authenticated, Identity, IdentityResolver
from collection_sync.notifier import ChangeNotifier

logger = logging.getLogger(__name__)


class CollectionStore:
    """Canonical list of one collection kind for whoever is acting"""

    def __init__(
        self,
        kind: CollectionKind,
        resolver: IdentityResolver,
        remote: BackendAdapter,
        local: BackendAdapter,
        notifier: ChangeNotifier
    ):
        self.kind = kind
        self.notifier = notifier
        self._resolver = resolver
        self._remote = remote
        self._local = local

    def _adapter_for(self, identity: Identity) -> BackendAdapter:
        return self._remote if isinstance(identity, Authenticated) else self._local

    async def list(self) -> List[CollectionItem]:
        """Current snapshot; empty when the backend cannot be read"""
        identity = self._resolver.resolve_identity()
        try:
            return await self._adapter_for(identity).fetch(identity)
        except MarketplaceError as e:
            ErrorHandler.log_error(e, {"operation": f"list {self.kind.name}", "identity": repr(identity)}, logging.WARNING)
            return []

    async def contains(self, item_id: str) -> bool:
        return any(item.id == item_id for item in await self.list())

    async def add(self, item: Union[CollectionItem, Dict[str, Any]]) -> OperationResult:
        """Add an item; a repeat add accumulates quantity (cart) or is a no-op (wishlist)"""
        if not isinstance(item, self.kind.item_model):
            data = item.model_dump(by_alias=True) if isinstance(item, CollectionItem) else item
            try:
                item = self.kind.parse_item(data)
            except ValidationError as e:
                logger.warning(f"Rejected {self.kind.name} item: {e.error_count()} validation error(s)")
                return OperationResult(success=False, message="Invalid product data", error_code="INVALID_ITEM")

        # A re-added item (e.g. moved from the wishlist) counts as inserted now
        item = item.model_copy(update={"added_at": utcnow()})

        return await self._mutate(
            "add",
            lambda adapter, identity: adapter.upsert(identity, item),
            f"Added to {self.kind.name}"
        )

    async def remove(self, item_id: str) -> OperationResult:
        """Remove an item by id; a missing id is a successful no-op"""
        return await self._mutate(
            "remove",
            lambda adapter, identity: adapter.delete(identity, item_id),
            f"Removed from {self.kind.name}"
        )

    async def clear(self) -> OperationResult:
        return await self._mutate(
            "clear",
            lambda adapter, identity: adapter.clear(identity),
            f"Cleared {self.kind.name}"
        )

    async def _mutate(
        self,
        operation: str,
        action: Callable[[BackendAdapter, Identity], Awaitable[None]],
        message: str
    ) -> OperationResult:
        identity = self._resolver.resolve_identity()
        try:
            await action(self._adapter_for(identity), identity)
        except MarketplaceError as e:
            ErrorHandler.log_error(e, {"operation": f"{operation} {self.kind.name}", "identity": repr(identity)})
            return OperationResult(success=False, message=e.message, error_code=e.error_code)

        logger.info(f"{operation} on {self.kind.name} succeeded for {identity!r}")
        self.notifier.notify(self.kind.name)
        return OperationResult(success=True, message=message)
