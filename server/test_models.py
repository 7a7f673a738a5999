import pytest
from pydantic import ValidationError

from models import CART, WISHLIST, CartItem, WishlistItem


class TestCartItem:

    def test_seller_product_with_title_only(self):
        """Seller-created products carry `title` but no `name`"""
        product = {
            'id': 'prod-123',
            'title': 'Premium Silk Scarf',
            'price': 2500,
            'imageUrl': 'https://example.com/scarf.jpg',
            'category': 'Fashion',
        }

        item = CartItem.from_product(product)

        assert item.id == 'prod-123'
        assert item.name == 'Premium Silk Scarf'
        assert item.image == 'https://example.com/scarf.jpg'
        assert item.quantity == 1

    def test_variant_selections_shape_id_and_price(self):
        product = {'id': 'phone', 'name': 'Phone', 'price': 30000, 'sellerId': 's1'}
        selections = {
            'color': 'Deep Blue',
            'storage': {'label': '256 GB', 'priceOffset': 5000},
            'memory': {'label': '8 GB', 'priceOffset': 2000},
        }

        item = CartItem.from_product(product, selections)

        assert item.id == 'phone_DeepBlue_256GB_8GB'
        assert item.product_id == 'phone'
        assert item.seller_id == 's1'
        assert item.price == 37000
        assert item.selections == {'color': 'Deep Blue', 'size': None, 'storage': '256 GB', 'memory': '8 GB'}

    def test_empty_selections_keep_product_id(self):
        assert CartItem.variant_id('p1', {'color': None, 'size': ''}) == 'p1'

    def test_quantity_must_be_positive(self):
        with pytest.raises(ValidationError):
            CartItem(id='x', quantity=0)

    def test_wire_format_uses_camel_case(self):
        wire = CartItem(id='x', product_id='x').to_wire()
        assert 'addedAt' in wire
        assert wire['productId'] == 'x'
        assert CART.parse_item(wire).added_at == CartItem.model_validate(wire).added_at


class TestWishlistItem:

    def test_defaults(self):
        item = WishlistItem.from_product({'id': 'p1', 'name': 'Lamp', 'price': 500, 'image': 'lamp.png'})

        assert item.category == 'Uncategorized'
        assert item.rating == 4.5
        assert item.reviews == 0
        assert item.image == 'lamp.png'

    def test_kind_parses_wishlist_items(self):
        assert isinstance(WISHLIST.parse_item({'id': 'p1'}), WishlistItem)
        assert WISHLIST.accumulates_quantity is False
        assert CART.accumulates_quantity is True
