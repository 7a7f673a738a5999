from datetime import datetime, timezone
from firebase_admin import firestore
from pydantic import TypeAdapter, ValidationError
from firebase_init import get_db
from error_handling import DatabaseOperationContext
from models import CollectionItem, CollectionKind, utcnow
from typing import Dict, List, Optional, Any
import logging

logger = logging.getLogger(__name__)

_timestamp = TypeAdapter(datetime)
_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def added_at_key(item: Dict[str, Any]) -> datetime:
    """Sort key for stored items: addedAt as an aware datetime, oldest first"""
    try:
        stamp = _timestamp.validate_python(item.get('addedAt'))
    except ValidationError:
        return _EPOCH
    if stamp.tzinfo is None:
        stamp = stamp.replace(tzinfo=timezone.utc)
    return stamp


class DatabaseService:
    """Service class for database operations"""

    @staticmethod
    def get_collection(path: str):
        """Get a Firestore collection reference for a slash-separated path"""
        parts = path.split('/')
        ref = get_db().collection(parts[0])
        for doc_id, sub_collection in zip(parts[1::2], parts[2::2]):
            ref = ref.document(doc_id).collection(sub_collection)
        return ref

    @staticmethod
    def get_document(collection_path: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """Get a document from Firestore"""
        with DatabaseOperationContext('get', collection_path):
            doc = DatabaseService.get_collection(collection_path).document(doc_id).get()
            if doc.exists:
                return doc.to_dict()
            return None

    @staticmethod
    def set_document(collection_path: str, doc_id: str, data: Dict[str, Any]):
        """Create or overwrite a document in Firestore"""
        with DatabaseOperationContext('set', collection_path):
            DatabaseService.get_collection(collection_path).document(doc_id).set(data)
            logger.info(f"Set document {doc_id} in {collection_path}")

    @staticmethod
    def update_document(collection_path: str, doc_id: str, updates: Dict[str, Any]):
        """Update a document in Firestore"""
        with DatabaseOperationContext('update', collection_path):
            DatabaseService.get_collection(collection_path).document(doc_id).update(updates)
            logger.info(f"Updated document {doc_id} in {collection_path}")

    @staticmethod
    def delete_document(collection_path: str, doc_id: str):
        """Delete a document from Firestore; deleting a missing document is not an error"""
        with DatabaseOperationContext('delete', collection_path):
            DatabaseService.get_collection(collection_path).document(doc_id).delete()
            logger.info(f"Deleted document {doc_id} from {collection_path}")

    @staticmethod
    def stream_documents(collection_path: str) -> List[Dict[str, Any]]:
        """Read every document of a collection, with its id folded into the data"""
        with DatabaseOperationContext('stream', collection_path):
            results = []
            for doc in DatabaseService.get_collection(collection_path).stream():
                data = doc.to_dict() or {}
                data['id'] = doc.id
                results.append(data)
            return results


class UserCollectionService:
    """Per-user cart and wishlist documents stored under users/{uid}/{kind}/{itemId}"""

    @staticmethod
    def _path(user_uid: str, kind: CollectionKind) -> str:
        return f"users/{user_uid}/{kind.name}"

    @staticmethod
    def list_items(user_uid: str, kind: CollectionKind) -> List[Dict[str, Any]]:
        """Get a user's collection in insertion order"""
        items = DatabaseService.stream_documents(UserCollectionService._path(user_uid, kind))
        # Firestore streams by document id; addedAt is stamped by add_item
        return sorted(items, key=added_at_key)

    @staticmethod
    def add_item(user_uid: str, kind: CollectionKind, item: CollectionItem) -> bool:
        """
        Upsert an item keyed by its id

        A new document gets addedAt from the server clock, whatever the
        client sent. Repeat adds never touch it.

        Args:
            user_uid: Owner of the collection
            kind: Cart or wishlist
            item: Validated item model

        Returns:
            bool: True if a new document was written, False if an existing one was merged
        """
        path = UserCollectionService._path(user_uid, kind)
        existing = DatabaseService.get_document(path, item.id)

        if existing is None:
            data = item.to_wire()
            data['addedAt'] = utcnow()
            DatabaseService.set_document(path, item.id, data)
            logger.info(f"Added {item.id} to {kind.name} of user {user_uid}")
            return True

        if kind.accumulates_quantity:
            increment = int(getattr(item, 'quantity', 1))
            DatabaseService.update_document(path, item.id, {'quantity': firestore.Increment(increment)})
            logger.info(f"Incremented {item.id} in {kind.name} of user {user_uid} by {increment}")
        else:
            logger.info(f"{item.id} already in {kind.name} of user {user_uid}")
        return False

    @staticmethod
    def remove_item(user_uid: str, kind: CollectionKind, item_id: str):
        """Remove an item by id"""
        DatabaseService.delete_document(UserCollectionService._path(user_uid, kind), item_id)

    @staticmethod
    def clear(user_uid: str, kind: CollectionKind) -> int:
        """Remove every item of a user's collection; returns how many were removed"""
        path = UserCollectionService._path(user_uid, kind)
        items = DatabaseService.stream_documents(path)
        for item in items:
            DatabaseService.delete_document(path, item['id'])
        logger.info(f"Cleared {len(items)} items from {kind.name} of user {user_uid}")
        return len(items)
