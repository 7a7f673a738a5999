"""
Identity resolution for synchronized collections

The acting identity is either `Authenticated(user_id)` or `Guest`. It is
resolved fresh on every collection operation: the live session wins, then the
identity hint persisted at sign-in (held by a TTL cache that the session
provider invalidates), then Guest.
"""

import json
import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Union

import config
from error_handling import ErrorHandler, MalformedLocalStateError, MarketplaceError
from collection_sync.storage import LocalStorage

logger = logging.getLogger(__name__)

IDENTITY_HINT_KEY = "user"


@dataclass(frozen=True)
class Authenticated:
    user_id: str


@dataclass(frozen=True)
class Guest:
    pass


GUEST = Guest()

Identity = Union[Authenticated, Guest]


@dataclass(frozen=True)
class Session:
    """A signed-in user as reported by the auth provider"""
    uid: str
    id_token: Optional[str] = None
    email: Optional[str] = None


class SessionProvider:
    """Holds the live session and tells subscribers when it changes"""

    def __init__(self, storage: LocalStorage):
        self._storage = storage
        self._session: Optional[Session] = None
        self._handlers: Dict[int, Callable[[Optional[Session]], None]] = {}
        self._next_handle = 0

    @property
    def current_session(self) -> Optional[Session]:
        return self._session

    def id_token(self) -> Optional[str]:
        return self._session.id_token if self._session else None

    def sign_in(self, session: Session):
        """
        Set the live session and persist the identity hint

        Call from inside the running event loop. Async change handlers (such
        as mounted listeners refreshing) are dropped with a warning otherwise.
        """
        self._session = session
        try:
            self._storage.set_item(IDENTITY_HINT_KEY, json.dumps({"uid": session.uid, "email": session.email}))
        except MarketplaceError as e:
            ErrorHandler.log_error(e, {"operation": "persist identity hint"}, logging.WARNING)
        logger.info(f"Signed in as {session.uid}")
        self._emit()

    def sign_out(self):
        """Drop the live session and the identity hint; same event loop caveat as sign_in"""
        previous = self._session
        self._session = None
        try:
            self._storage.remove_item(IDENTITY_HINT_KEY)
        except MarketplaceError as e:
            ErrorHandler.log_error(e, {"operation": "remove identity hint"}, logging.WARNING)
        logger.info(f"Signed out {previous.uid if previous else 'guest'}")
        self._emit()

    def subscribe(self, handler: Callable[[Optional[Session]], None]) -> Callable[[], None]:
        self._next_handle += 1
        handle = self._next_handle
        self._handlers[handle] = handler

        def unsubscribe():
            self._handlers.pop(handle, None)

        return unsubscribe

    def _emit(self):
        for handler in list(self._handlers.values()):
            handler(self._session)


class SessionCache:
    """
    Cached identity hint with a time-to-live

    The hint is parsed from local storage at most once per TTL window, and
    again right after `invalidate()`.
    """

    def __init__(self, storage: LocalStorage, ttl: float = None, clock: Callable[[], float] = time.monotonic):
        self._storage = storage
        self._ttl = config.SESSION_HINT_TTL if ttl is None else ttl
        self._clock = clock
        self._user_id: Optional[str] = None
        self._expires_at: Optional[float] = None

    def invalidate(self):
        self._expires_at = None
        self._user_id = None

    def hinted_user_id(self) -> Optional[str]:
        now = self._clock()
        if self._expires_at is not None and now < self._expires_at:
            return self._user_id

        self._user_id = self._load()
        self._expires_at = now + self._ttl
        return self._user_id

    def _load(self) -> Optional[str]:
        try:
            raw = self._storage.get_item(IDENTITY_HINT_KEY)
        except MarketplaceError as e:
            ErrorHandler.log_error(e, {"operation": "read identity hint"}, logging.WARNING)
            return None

        if raw is None:
            return None

        try:
            hint = json.loads(raw)
        except ValueError as e:
            ErrorHandler.log_error(MalformedLocalStateError(IDENTITY_HINT_KEY, str(e)), level=logging.WARNING)
            return None

        uid = hint.get("uid") if isinstance(hint, dict) else None
        if not isinstance(uid, str) or not uid:
            ErrorHandler.log_error(MalformedLocalStateError(IDENTITY_HINT_KEY, "missing uid"), level=logging.WARNING)
            return None
        if not uid.isprintable():
            ErrorHandler.log_error(MalformedLocalStateError(IDENTITY_HINT_KEY, "non-printable uid"), level=logging.WARNING)
            return None
        return uid


class IdentityResolver:
    """Resolves who is acting right now; never raises"""

    def __init__(self, session_provider: SessionProvider, session_cache: SessionCache):
        self._session_provider = session_provider
        self._session_cache = session_cache

    def resolve_identity(self) -> Identity:
        session = self._session_provider.current_session
        if session is not None:
            return Authenticated(session.uid)

        hinted = self._session_cache.hinted_user_id()
        if hinted:
            return Authenticated(hinted)

        return GUEST
