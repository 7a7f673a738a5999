"""
Collection Routes for the Marketplace Collections API

Cart and wishlist endpoints. Both kinds share one set of handlers; the
`kind` path segment selects the item model and the merge policy.
"""

from fastapi import APIRouter, Depends
from pydantic import ValidationError
from auth import get_current_user, require_user_ownership
from database import UserCollectionService
from error_handling import InvalidItemError, ResponseHelpers, UnknownCollectionError
from models import AddItemRequest, COLLECTION_KINDS, CollectionKind, RemoveItemRequest
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/user", tags=["collections"])


def resolve_kind(kind: str) -> CollectionKind:
    """Map the `kind` path segment to its CollectionKind"""
    try:
        return COLLECTION_KINDS[kind]
    except KeyError:
        raise UnknownCollectionError(kind)


@router.get("/{uid}/{kind}")
async def list_collection(uid: str, kind: str, user_data: dict = Depends(get_current_user)):
    """Get a user's cart or wishlist"""
    require_user_ownership(uid, user_data)
    collection_kind = resolve_kind(kind)

    items = UserCollectionService.list_items(uid, collection_kind)
    logger.info(f"Fetched {len(items)} {kind} items for user {uid}")

    return {"success": True, "items": items}


@router.post("/{uid}/{kind}/add")
async def add_to_collection(
    uid: str,
    kind: str,
    request: AddItemRequest,
    user_data: dict = Depends(get_current_user)
):
    """Add a product to a user's cart or wishlist"""
    require_user_ownership(uid, user_data)
    collection_kind = resolve_kind(kind)

    if not request.product or not request.product.get('id'):
        raise InvalidItemError("Invalid product data", "product")

    try:
        item = collection_kind.parse_item(request.product)
    except ValidationError as e:
        logger.warning(f"Rejected {kind} item for user {uid}: {e}")
        raise InvalidItemError("Invalid product data", "product") from e

    UserCollectionService.add_item(uid, collection_kind, item)

    return ResponseHelpers.success_response(f"Added to {kind}")


@router.post("/{uid}/{kind}/remove")
async def remove_from_collection(
    uid: str,
    kind: str,
    request: RemoveItemRequest,
    user_data: dict = Depends(get_current_user)
):
    """Remove a product from a user's cart or wishlist"""
    require_user_ownership(uid, user_data)
    collection_kind = resolve_kind(kind)

    if not request.product_id:
        raise InvalidItemError("Invalid product ID", "productId")

    UserCollectionService.remove_item(uid, collection_kind, request.product_id)
    logger.info(f"Removed {request.product_id} from {kind} of user {uid}")

    return ResponseHelpers.success_response(f"Removed from {kind}")


@router.post("/{uid}/{kind}/clear")
async def clear_collection(uid: str, kind: str, user_data: dict = Depends(get_current_user)):
    """Empty a user's cart or wishlist"""
    require_user_ownership(uid, user_data)
    collection_kind = resolve_kind(kind)

    removed = UserCollectionService.clear(uid, collection_kind)

    return ResponseHelpers.success_response(f"Cleared {kind}", removed=removed)
