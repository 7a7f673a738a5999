"""
Authentication Module for the Marketplace Collections API

This module verifies Firebase ID tokens and enforces that users only touch
their own collections.
"""

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from firebase_admin import auth as firebase_auth
from firebase_init import initialize_firebase
from error_handling import AccessDeniedError, NotAuthenticatedError
import logging

logger = logging.getLogger(__name__)

# Security
security = HTTPBearer(auto_error=False)


async def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(security)):
    """
    Get current authenticated user (required auth)

    Args:
        credentials: HTTP authorization credentials

    Returns:
        dict: User data containing uid, email and name

    Raises:
        NotAuthenticatedError: If the header is missing or the token does not verify
    """
    if not credentials:
        raise NotAuthenticatedError("Missing or invalid authorization header")

    try:
        initialize_firebase()
        decoded_token = firebase_auth.verify_id_token(credentials.credentials)
    except Exception as e:
        logger.error(f"Token verification failed: {e}")
        raise NotAuthenticatedError("Invalid authentication token") from e

    logger.debug(f"Token verified for user: {decoded_token.get('uid')}")
    return {
        'uid': decoded_token.get('uid'),
        'email': decoded_token.get('email'),
        'name': decoded_token.get('name', 'Unknown')
    }


def require_user_ownership(resource_user_id: str, current_user: dict):
    """
    Verify the current user owns the resource

    Args:
        resource_user_id: User ID associated with the resource
        current_user: Current authenticated user data

    Raises:
        AccessDeniedError: If the ids differ
    """
    if current_user.get('uid') != resource_user_id:
        logger.warning(f"User {current_user.get('uid')} denied access to collections of {resource_user_id}")
        raise AccessDeniedError(resource_user_id)
    return True
