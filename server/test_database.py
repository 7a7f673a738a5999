import pytest
from datetime import datetime, timezone
from unittest.mock import Mock, patch

from firebase_admin import firestore

from database import DatabaseService, UserCollectionService
from error_handling import DatabaseError
from models import CART, WISHLIST, CartItem, WishlistItem


class TestUserCollectionService:
    """Cart and wishlist documents under users/{uid}/{kind}"""

    def test_first_add_writes_document(self, fake_db):
        created = UserCollectionService.add_item('u1', WISHLIST, WishlistItem(id='p1', name='Scarf', price=500))

        assert created is True
        assert fake_db.docs['users/u1/wishlist/p1']['price'] == 500

    def test_cart_merge_increments_quantity(self, fake_db):
        UserCollectionService.add_item('u1', CART, CartItem(id='x', price=3))
        created = UserCollectionService.add_item('u1', CART, CartItem(id='x', price=3, quantity=2))

        assert created is False
        assert fake_db.docs['users/u1/cart/x']['quantity'] == 3

    def test_cart_merge_uses_atomic_increment(self, fake_db):
        UserCollectionService.add_item('u1', CART, CartItem(id='x'))

        with patch.object(DatabaseService, 'update_document') as update:
            UserCollectionService.add_item('u1', CART, CartItem(id='x', quantity=2))

        path, doc_id, updates = update.call_args.args
        assert (path, doc_id) == ('users/u1/cart', 'x')
        assert isinstance(updates['quantity'], firestore.Increment)
        assert updates['quantity'].value == 2

    def test_first_add_stamps_server_time(self, fake_db):
        stale = datetime(2001, 1, 1, tzinfo=timezone.utc)
        before = datetime.now(timezone.utc)

        UserCollectionService.add_item('u1', CART, CartItem(id='x', added_at=stale))

        assert fake_db.docs['users/u1/cart/x']['addedAt'] >= before

    def test_list_orders_by_timestamp_value(self, fake_db):
        fake_db.docs.update({
            'users/u1/wishlist/whole': {'addedAt': '2024-01-01T10:00:00Z'},
            'users/u1/wishlist/fraction': {'addedAt': '2024-01-01T10:00:00.500000Z'},
            'users/u1/wishlist/offset': {'addedAt': '2024-01-01T11:30:00+02:00'},
            'users/u1/wishlist/native': {'addedAt': datetime(2025, 1, 1, tzinfo=timezone.utc)},
            'users/u1/wishlist/unknown': {},
        })

        items = UserCollectionService.list_items('u1', WISHLIST)

        assert [item['id'] for item in items] == ['unknown', 'offset', 'whole', 'fraction', 'native']

    def test_wishlist_merge_keeps_original(self, fake_db):
        UserCollectionService.add_item('u1', WISHLIST, WishlistItem(id='p1', name='First'))
        UserCollectionService.add_item('u1', WISHLIST, WishlistItem(id='p1', name='Second'))

        assert fake_db.docs['users/u1/wishlist/p1']['name'] == 'First'

    def test_collections_are_scoped_per_user_and_kind(self, fake_db):
        UserCollectionService.add_item('u1', CART, CartItem(id='x'))
        UserCollectionService.add_item('u2', WISHLIST, WishlistItem(id='y'))

        assert [item['id'] for item in UserCollectionService.list_items('u1', CART)] == ['x']
        assert UserCollectionService.list_items('u1', WISHLIST) == []
        assert UserCollectionService.list_items('u2', CART) == []

    def test_remove_missing_item(self, fake_db):
        UserCollectionService.remove_item('u1', WISHLIST, 'nope')
        assert fake_db.deletes == ['users/u1/wishlist/nope']

    def test_clear_only_touches_one_collection(self, fake_db):
        UserCollectionService.add_item('u1', CART, CartItem(id='a'))
        UserCollectionService.add_item('u1', CART, CartItem(id='b'))
        UserCollectionService.add_item('u1', WISHLIST, WishlistItem(id='w'))

        assert UserCollectionService.clear('u1', CART) == 2
        assert UserCollectionService.list_items('u1', CART) == []
        assert len(UserCollectionService.list_items('u1', WISHLIST)) == 1


class TestDatabaseService:
    """Path handling and failure conversion"""

    @patch('database.get_db')
    def test_nested_collection_path(self, mock_get_db):
        db = Mock()
        mock_get_db.return_value = db

        DatabaseService.get_collection('users/u1/cart')

        db.collection.assert_called_once_with('users')
        db.collection.return_value.document.assert_called_once_with('u1')
        db.collection.return_value.document.return_value.collection.assert_called_once_with('cart')

    @patch('database.get_db')
    def test_failure_becomes_database_error(self, mock_get_db):
        mock_get_db.return_value.collection.side_effect = Exception("Database error")

        with pytest.raises(DatabaseError) as exc_info:
            DatabaseService.set_document('users/u1/cart', 'x', {})

        assert exc_info.value.operation == 'set'
        assert exc_info.value.collection == 'users/u1/cart'

    @patch('database.get_db')
    def test_get_missing_document(self, mock_get_db):
        snapshot = Mock()
        snapshot.exists = False
        mock_get_db.return_value.collection.return_value.document.return_value.get.return_value = snapshot

        assert DatabaseService.get_document('items', 'nope') is None
