"""
Shared fixtures: a fresh SQLite file and storage directory per test.
"""

import pytest
from fastapi.testclient import TestClient

from dossier_backend.api import create_app
from dossier_backend.audit import RequestMeta
from dossier_backend.auth import AuthContext, token_for_user
from dossier_backend.config import Settings
from dossier_backend.db import Database, User, UserRole
from dossier_backend.seed import bootstrap
from dossier_backend.storage import LocalStorage


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'dossier_test.db'}",
        local_storage_path=str(tmp_path / "storage"),
        jwt_secret_key="test-secret-key",
        owner_email=None,
        owner_password=None,
    )


@pytest.fixture
def database(settings):
    database = Database.from_settings(settings)
    bootstrap(database, settings)
    yield database
    database.dispose()


@pytest.fixture
def storage(settings):
    return LocalStorage(settings.local_storage_path, settings.local_storage_url)


@pytest.fixture
def db(database):
    session = database.new_session()
    yield session
    session.close()


@pytest.fixture
def app(settings, database, storage):
    return create_app(settings=settings, database=database, storage=storage)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def users(db):
    """One active user per role"""
    created = {}
    for role in UserRole:
        user = User(email=f"{role.value}@example.com", name=f"{role.value.title()} User", role=role)
        db.add(user)
        created[role] = user
    db.commit()
    return created


@pytest.fixture
def auth_for(users):
    def _auth(role: UserRole) -> AuthContext:
        user = users[role]
        return AuthContext(user_id=user.id, email=user.email, name=user.name, role=user.role)
    return _auth


@pytest.fixture
def headers_for(users, settings):
    def _headers(role: UserRole) -> dict:
        return {"Authorization": f"Bearer {token_for_user(users[role], settings)}"}
    return _headers


@pytest.fixture
def meta():
    return RequestMeta(ip_address="127.0.0.1", user_agent="pytest")
