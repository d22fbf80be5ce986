import pytest
from fastapi.testclient import TestClient

from nutri_api.api.deps import get_auth_service
from nutri_api.core.exceptions import DatabaseError, IdentityProviderError
from nutri_api.main import app
from nutri_api.services.auth_service import AuthService

from .fakes import FIXED_NOW, FakeDb, FakeIdentity


@pytest.fixture
def identity():
    return FakeIdentity()


@pytest.fixture
def db():
    return FakeDb()


@pytest.fixture
def service(identity, db):
    return AuthService(identity, db, clock=lambda: FIXED_NOW)


@pytest.fixture
def client(service):
    app.dependency_overrides[get_auth_service] = lambda: service
    try:
        yield TestClient(app, raise_server_exceptions=False)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def provider_error():
    def _make(message, status=400):
        return IdentityProviderError(message, status=status)
    return _make


@pytest.fixture
def db_error():
    def _make(message, status="PGRST116"):
        return DatabaseError(message, status=status)
    return _make
