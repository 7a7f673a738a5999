"""
Pydantic Models for the Marketplace Collections API

This module contains the item models for carts and wishlists, the collection
kinds that tie each item model to its storage key and merge policy, and the
request/response bodies of the collections endpoints.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CollectionItem(BaseModel):
    """An entry in a user's cart or wishlist"""
    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    id: str = Field(..., min_length=1)
    name: str = ''
    price: float = Field(default=0.0, ge=0)
    image: Optional[str] = None
    category: str = 'Uncategorized'
    added_at: datetime = Field(default_factory=utcnow, alias='addedAt')

    def to_wire(self) -> Dict[str, Any]:
        """JSON-safe dict with camelCase keys"""
        return self.model_dump(mode='json', by_alias=True)


class WishlistItem(CollectionItem):
    """Wishlist entry; repeat adds of the same id are no-ops"""
    rating: float = 4.5
    reviews: int = 0

    @classmethod
    def from_product(cls, product: Dict[str, Any]) -> 'WishlistItem':
        return cls(
            id=product['id'],
            name=product.get('name') or product.get('title') or '',
            price=float(product.get('price') or 0),
            image=product.get('image') or product.get('imageUrl'),
            category=product.get('category') or 'Uncategorized',
            rating=product.get('rating') or 4.5,
            reviews=product.get('reviews') or 0
        )


class CartItem(CollectionItem):
    """Cart entry; repeat adds of the same id accumulate quantity"""
    quantity: int = Field(default=1, gt=0)
    product_id: Optional[str] = Field(default=None, alias='productId')
    seller_id: Optional[str] = Field(default=None, alias='sellerId')
    selections: Dict[str, Optional[str]] = Field(default_factory=dict)

    @staticmethod
    def variant_id(product_id: str, selections: Dict[str, Any] = None) -> str:
        """
        Build the cart entry id for a product and its chosen variant

        Args:
            product_id: Catalog product id
            selections: Variant choices, e.g. {"color": "Red", "storage": {"label": "256 GB"}}

        Returns:
            str: `product_id`, or `product_id_<variant key>` when any selection is set
        """
        values = []
        for value in (selections or {}).values():
            if isinstance(value, dict):
                value = value.get('label')
            if value:
                values.append(str(value))
        variant_key = ''.join('_'.join(values).split())
        return f"{product_id}_{variant_key}" if variant_key else product_id

    @classmethod
    def from_product(cls, product: Dict[str, Any], selections: Dict[str, Any] = None) -> 'CartItem':
        selections = selections or {}

        def _label(key):
            value = selections.get(key)
            if isinstance(value, dict):
                return value.get('label')
            return value or None

        def _offset(key):
            value = selections.get(key)
            if isinstance(value, dict):
                return float(value.get('priceOffset') or 0)
            return 0.0

        return cls(
            id=cls.variant_id(product['id'], selections),
            product_id=product['id'],
            seller_id=product.get('sellerId'),
            name=product.get('name') or product.get('title') or '',
            price=float(product.get('price') or 0) + _offset('storage') + _offset('memory'),
            image=product.get('imageUrl') or product.get('image'),
            category=product.get('category') or 'Uncategorized',
            quantity=1,
            selections={
                'color': _label('color'),
                'size': _label('size'),
                'storage': _label('storage'),
                'memory': _label('memory')
            }
        )


@dataclass(frozen=True)
class CollectionKind:
    """Per-entity settings of a synchronized collection"""
    name: str
    item_model: Type[CollectionItem]
    storage_key: str
    accumulates_quantity: bool

    def parse_item(self, data: Dict[str, Any]) -> CollectionItem:
        return self.item_model.model_validate(data)


CART = CollectionKind('cart', CartItem, 'tempCart', accumulates_quantity=True)
WISHLIST = CollectionKind('wishlist', WishlistItem, 'tempWishlist', accumulates_quantity=False)

COLLECTION_KINDS: Dict[str, CollectionKind] = {
    CART.name: CART,
    WISHLIST.name: WISHLIST,
}


class AddItemRequest(BaseModel):
    """Body of POST /api/user/{uid}/{kind}/add"""
    product: Optional[Dict[str, Any]] = None


class RemoveItemRequest(BaseModel):
    """Body of POST /api/user/{uid}/{kind}/remove"""
    product_id: Optional[str] = Field(default=None, alias='productId')

    model_config = ConfigDict(populate_by_name=True)


class CollectionResponse(BaseModel):
    """Wire shape of every collections endpoint response"""
    model_config = ConfigDict(extra='ignore')

    success: bool
    items: List[Dict[str, Any]] = Field(default_factory=list)
    message: Optional[str] = None
    error_code: Optional[str] = None


class OperationResult(BaseModel):
    """Outcome of a collection mutation as seen by the caller"""
    success: bool
    message: Optional[str] = None
    error_code: Optional[str] = None
