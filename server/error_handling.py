"""
Error Handling Module

Provides the exception hierarchy shared by the collections backend and the
client-side collection store, structured error logging, and the FastAPI
exception handler that renders errors in the `{success: false, message}` shape.
"""

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import traceback

import config

logger = logging.getLogger(__name__)


class MarketplaceError(Exception):
    """Base exception class for marketplace collection errors"""

    def __init__(self, message: str, error_code: str = None, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code or "GENERAL_ERROR"
        self.details = details or {}
        super().__init__(self.message)


class RemoteUnavailableError(MarketplaceError):
    """Raised when the collections backend cannot be reached or answers garbage"""

    def __init__(self, message: str, url: str = None, status_code: int = None):
        self.url = url
        self.status_code = status_code
        details = {}
        if url:
            details['url'] = url
        if status_code is not None:
            details['status_code'] = status_code
        super().__init__(message, "REMOTE_UNAVAILABLE", details)


class MalformedLocalStateError(MarketplaceError):
    """Raised when a value in local storage cannot be parsed"""

    def __init__(self, key: str, reason: str = None):
        self.key = key
        message = f"Local state under '{key}' is malformed"
        if reason:
            message += f": {reason}"
        super().__init__(message, "MALFORMED_LOCAL_STATE", {"key": key})


class NotAuthenticatedError(MarketplaceError):
    """Raised when a request carries no usable identity"""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, "NOT_AUTHENTICATED")


class AccessDeniedError(MarketplaceError):
    """Raised when a user touches another user's collection"""

    def __init__(self, user_id: str = None):
        self.user_id = user_id
        super().__init__("Access denied", "ACCESS_DENIED", {"user_id": user_id} if user_id else {})


class InvalidItemError(MarketplaceError):
    """Raised when an item payload fails validation"""

    def __init__(self, message: str, field: str = None):
        self.field = field
        super().__init__(message, "INVALID_ITEM", {"field": field} if field else {})


class UnknownCollectionError(MarketplaceError):
    """Raised for a collection kind other than cart or wishlist"""

    def __init__(self, kind: str):
        self.kind = kind
        super().__init__(f"Unknown collection '{kind}'", "UNKNOWN_COLLECTION", {"kind": kind})


class DatabaseError(MarketplaceError):
    """Raised when database operations fail"""

    def __init__(self, message: str, operation: str = None, collection: str = None):
        self.operation = operation
        self.collection = collection
        details = {}
        if operation:
            details['operation'] = operation
        if collection:
            details['collection'] = collection
        super().__init__(message, "DATABASE_ERROR", details)


class ErrorHandler:
    """Centralized error handling and logging"""

    @staticmethod
    def log_error(error: Exception, context: Dict[str, Any] = None, level: int = logging.ERROR):
        """Log an error with context information"""
        context = context or {}

        error_info = {
            'error_type': type(error).__name__,
            'error_message': str(error),
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'context': context
        }

        if isinstance(error, MarketplaceError):
            error_info['error_code'] = error.error_code
            error_info['details'] = error.details

        if config.DEBUG and error.__traceback__ is not None:
            error_info['stack_trace'] = ''.join(traceback.format_exception(type(error), error, error.__traceback__))

        logger.log(level, f"Error occurred: {error_info}")

        return error_info

    @staticmethod
    def format_error_response(error: Exception) -> Dict[str, Any]:
        """Format an error for API response"""
        if isinstance(error, MarketplaceError):
            return ResponseHelpers.error_response(error.message, error.error_code, error.details)
        elif isinstance(error, HTTPException):
            return ResponseHelpers.error_response(str(error.detail), "HTTP_ERROR")
        else:
            return ResponseHelpers.error_response("An internal error occurred", "INTERNAL_ERROR")

    @staticmethod
    def get_http_status_code(error: Exception) -> int:
        """Get appropriate HTTP status code for an error"""
        if isinstance(error, HTTPException):
            return error.status_code
        elif isinstance(error, InvalidItemError):
            return status.HTTP_400_BAD_REQUEST
        elif isinstance(error, NotAuthenticatedError):
            return status.HTTP_401_UNAUTHORIZED
        elif isinstance(error, AccessDeniedError):
            return status.HTTP_403_FORBIDDEN
        elif isinstance(error, UnknownCollectionError):
            return status.HTTP_404_NOT_FOUND
        elif isinstance(error, (DatabaseError, RemoteUnavailableError)):
            return status.HTTP_503_SERVICE_UNAVAILABLE
        else:
            return status.HTTP_500_INTERNAL_SERVER_ERROR


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler for the FastAPI application"""
    context = {
        "method": request.method,
        "url": str(request.url),
        "user_agent": request.headers.get("user-agent", "unknown")
    }

    ErrorHandler.log_error(exc, context)

    return JSONResponse(
        status_code=ErrorHandler.get_http_status_code(exc),
        content=ErrorHandler.format_error_response(exc)
    )


class DatabaseOperationContext:
    """Context manager for database operations with error handling"""

    def __init__(self, operation: str, collection: str = None):
        self.operation = operation
        self.collection = collection
        self.start_time = None

    def __enter__(self):
        self.start_time = datetime.now()
        logger.debug(f"Starting database operation: {self.operation} on {self.collection}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = datetime.now() - self.start_time

        if exc_type is None:
            logger.info(f"Database operation completed: {self.operation} on {self.collection} in {duration.total_seconds():.3f}s")
            return False

        logger.error(f"Database operation failed: {self.operation} on {self.collection} after {duration.total_seconds():.3f}s")

        if not issubclass(exc_type, (MarketplaceError, HTTPException)):
            raise DatabaseError(
                f"Database operation failed: {str(exc_val)}",
                self.operation,
                self.collection
            ) from exc_val

        return False


class ResponseHelpers:
    """Helper functions for creating consistent API responses"""

    @staticmethod
    def success_response(message: str, **data: Any) -> Dict[str, Any]:
        """Create a success response"""
        response = {
            "success": True,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat()
        }
        response.update(data)
        return response

    @staticmethod
    def error_response(message: str, error_code: str = None, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Create an error response"""
        response = {
            "success": False,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat()
        }

        if error_code:
            response["error_code"] = error_code

        if details:
            response["details"] = details

        return response
