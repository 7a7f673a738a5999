"""
Backend adapters for synchronized collections

A collection talks to one of two backends depending on the acting identity:
the collections REST API for signed-in users, local storage for guests. Both
expose fetch / upsert / delete / clear and raise `MarketplaceError`
subclasses on failure.
"""

import asyncio
import json
import logging
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from error_handling import (
    ErrorHandler,
    MalformedLocalStateError,
    MarketplaceError,
    NotAuthenticatedError,
    RemoteUnavailableError,
)
from models import CollectionItem, CollectionKind, CollectionResponse
from collection_sync.identity import Authenticated, Identity
from collection_sync.storage import LocalStorage

logger = logging.getLogger(__name__)


class BackendAdapter:
    """Storage backend of one collection kind"""

    def __init__(self, kind: CollectionKind):
        self.kind = kind

    async def fetch(self, identity: Identity) -> List[CollectionItem]:
        raise NotImplementedError

    async def upsert(self, identity: Identity, item: CollectionItem):
        raise NotImplementedError

    async def delete(self, identity: Identity, item_id: str):
        raise NotImplementedError

    async def clear(self, identity: Identity):
        raise NotImplementedError

    def _parse_items(self, raw_items: List[Any], source: str) -> List[CollectionItem]:
        items = []
        for raw in raw_items:
            try:
                items.append(self.kind.parse_item(raw))
            except ValidationError as e:
                logger.warning(f"Skipping invalid {self.kind.name} entry from {source}: {e.error_count()} error(s)")
        return items


class RemoteBackendAdapter(BackendAdapter):
    """Collections REST API, scoped to /api/user/{uid}/{kind}"""

    def __init__(
        self,
        kind: CollectionKind,
        client: httpx.AsyncClient,
        token_provider: Callable[[], Optional[str]] = None
    ):
        super().__init__(kind)
        self._client = client
        self._token_provider = token_provider

    def _headers(self) -> Dict[str, str]:
        token = self._token_provider() if self._token_provider else None
        return {"Authorization": f"Bearer {token}"} if token else {}

    def _url(self, identity: Identity, action: str = "") -> str:
        if not isinstance(identity, Authenticated):
            raise NotAuthenticatedError(f"Remote {self.kind.name} requires a signed-in user")
        suffix = f"/{action}" if action else ""
        return f"/api/user/{quote(identity.user_id, safe='')}/{self.kind.name}{suffix}"

    async def _request(self, method: str, url: str, payload: Dict[str, Any] = None) -> CollectionResponse:
        try:
            response = await self._client.request(method, url, json=payload, headers=self._headers())
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise RemoteUnavailableError(f"Request to {url} failed: {e}", url) from e

        try:
            body = CollectionResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise RemoteUnavailableError(
                f"Unreadable response from {url}", url, response.status_code
            ) from e

        if not body.success:
            raise MarketplaceError(
                body.message or f"{self.kind.name} request rejected",
                body.error_code or "REMOTE_REJECTED",
                {"url": url, "status_code": response.status_code}
            )
        return body

    async def fetch(self, identity: Identity) -> List[CollectionItem]:
        url = self._url(identity)
        body = await self._request("GET", url)
        return self._parse_items(body.items, url)

    async def upsert(self, identity: Identity, item: CollectionItem):
        await self._request("POST", self._url(identity, "add"), {"product": item.to_wire()})

    async def delete(self, identity: Identity, item_id: str):
        await self._request("POST", self._url(identity, "remove"), {"productId": item_id})

    async def clear(self, identity: Identity):
        await self._request("POST", self._url(identity, "clear"))


class LocalStorageAdapter(BackendAdapter):
    """
    Guest collection kept as one JSON list under the kind's storage key

    Every mutation is a read-modify-write of the whole list, so mutations go
    through a single-writer lock. Storage I/O runs on a worker thread.
    """

    def __init__(self, kind: CollectionKind, storage: LocalStorage):
        super().__init__(kind)
        self._storage = storage
        self._write_lock = asyncio.Lock()

    def _read(self) -> List[CollectionItem]:
        key = self.kind.storage_key
        raw = self._storage.get_item(key)
        if raw is None:
            return []

        try:
            data = json.loads(raw)
        except ValueError as e:
            ErrorHandler.log_error(MalformedLocalStateError(key, str(e)), level=logging.WARNING)
            return []

        if not isinstance(data, list):
            ErrorHandler.log_error(MalformedLocalStateError(key, "expected a list"), level=logging.WARNING)
            return []

        return self._parse_items(data, key)

    def _write(self, items: List[CollectionItem]):
        self._storage.set_item(self.kind.storage_key, json.dumps([item.to_wire() for item in items]))

    async def fetch(self, identity: Identity) -> List[CollectionItem]:
        return await asyncio.to_thread(self._read)

    async def upsert(self, identity: Identity, item: CollectionItem):
        async with self._write_lock:
            items = await asyncio.to_thread(self._read)

            for existing in items:
                if existing.id == item.id:
                    if not self.kind.accumulates_quantity:
                        logger.debug(f"{item.id} already in guest {self.kind.name}")
                        return
                    existing.quantity += item.quantity
                    break
            else:
                items.append(item)

            await asyncio.to_thread(self._write, items)

    async def delete(self, identity: Identity, item_id: str):
        async with self._write_lock:
            items = await asyncio.to_thread(self._read)
            remaining = [item for item in items if item.id != item_id]
            if len(remaining) == len(items):
                return
            await asyncio.to_thread(self._write, remaining)

    async def clear(self, identity: Identity):
        async with self._write_lock:
            await asyncio.to_thread(self._write, [])
