import pytest
from unittest.mock import patch

import httpx
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials
from fastapi.testclient import TestClient
from firebase_admin import firestore

from auth import get_current_user, security
from error_handling import NotAuthenticatedError
from main import app
from collection_sync import create_context


class FakeSnapshot:
    def __init__(self, doc_id, data):
        self.id = doc_id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return dict(self._data) if self._data is not None else None


class FakeDocument:
    def __init__(self, db, path):
        self._db = db
        self._path = path
        self.id = path.rsplit('/', 1)[-1]

    def get(self):
        return FakeSnapshot(self.id, self._db.docs.get(self._path))

    def set(self, data):
        self._db.docs[self._path] = dict(data)

    def update(self, updates):
        doc = self._db.docs[self._path]
        for key, value in updates.items():
            if isinstance(value, firestore.Increment):
                value = doc.get(key, 0) + value.value
            doc[key] = value

    def delete(self):
        self._db.deletes.append(self._path)
        self._db.docs.pop(self._path, None)

    def collection(self, name):
        return FakeCollection(self._db, f"{self._path}/{name}")


class FakeCollection:
    def __init__(self, db, path):
        self._db = db
        self._path = path

    def document(self, doc_id):
        return FakeDocument(self._db, f"{self._path}/{doc_id}")

    def stream(self):
        prefix = self._path + '/'
        for path, data in list(self._db.docs.items()):
            rest = path[len(prefix):]
            if path.startswith(prefix) and '/' not in rest:
                yield FakeSnapshot(rest, data)


class FakeFirestore:
    """Dict-backed stand-in for the Firestore client used in tests"""

    def __init__(self):
        self.docs = {}
        self.deletes = []

    def collection(self, name):
        return FakeCollection(self, name)


class RecordingTransport(httpx.AsyncBaseTransport):
    """Routes requests into the FastAPI app and remembers them"""

    def __init__(self, asgi_app):
        self._inner = httpx.ASGITransport(app=asgi_app)
        self.requests = []

    async def handle_async_request(self, request):
        self.requests.append((request.method, request.url.path))
        return await self._inner.handle_async_request(request)

    def count(self, method, path):
        return self.requests.count((method, path))


async def token_user(credentials: HTTPAuthorizationCredentials = Depends(security)):
    """Accepts bearer tokens of the form token-<uid>"""
    if not credentials:
        raise NotAuthenticatedError("Missing or invalid authorization header")
    return {'uid': credentials.credentials.removeprefix('token-'), 'email': None, 'name': 'Test'}


@pytest.fixture
def fake_db():
    db = FakeFirestore()
    with patch('database.get_db', return_value=db):
        yield db


@pytest.fixture
def client(fake_db):
    app.dependency_overrides[get_current_user] = token_user
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def transport(fake_db):
    app.dependency_overrides[get_current_user] = token_user
    yield RecordingTransport(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_context(transport):
    """Factory for a SyncContext wired to the in-process API and an in-memory SQLite store"""

    def _make(**kwargs):
        kwargs.setdefault('transport', transport)
        return create_context(base_url='http://testserver', storage_path=':memory:', **kwargs)

    return _make
