import firebase_admin
from firebase_admin import credentials, firestore
import logging
import os

import config

logger = logging.getLogger(__name__)

_db = None


def initialize_firebase():
    """Initialize the default Firebase app once per process"""
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass

    service_account_path = config.FIREBASE_SERVICE_ACCOUNT

    if os.path.exists(service_account_path):
        cred = credentials.Certificate(service_account_path)
        app = firebase_admin.initialize_app(cred)
        logger.info("Firebase initialized with service account key")
    else:
        # Falls back to GOOGLE_APPLICATION_CREDENTIALS / metadata server
        app = firebase_admin.initialize_app(credentials.ApplicationDefault(), {
            'projectId': config.FIREBASE_PROJECT_ID
        })
        logger.info("Firebase initialized with application default credentials")

    return app


def get_db():
    """Return the process-wide Firestore client, initializing Firebase on first use"""
    global _db
    if _db is None:
        initialize_firebase()
        _db = firestore.client()
        logger.info("Firestore client ready")
    return _db


__all__ = ['initialize_firebase', 'get_db']
