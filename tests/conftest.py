import base64
import os
import tempfile

# Keep test runs from writing into the project's log/ directory
os.environ.setdefault("USERGATE_LOG_DIR", tempfile.mkdtemp(prefix="usergate-log-"))

import pytest
from fastapi.testclient import TestClient

from auth.service import CredentialService, UserService
from core.config import Settings
from core.security import PasswordHasher, TokenCodec
from database import Base, DocumentStore, create_db_engine
from main import create_app
from models.user import User

ENCRYPTION_KEY = bytes(range(32))
SECRET = "test-signing-secret-0123456789-abcdefghijklmnopqrstuvwxyz"
OTHER_SECRET = "another-signing-secret-9876543210-zyxwvutsrqponmlkjihgfedcba"

# Cheap rounds for tests only; production uses the fixed default
TEST_ROUNDS = 1000


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def settings(tmp_path):
    return Settings(
        _env_file=None,
        database_url=f"sqlite:///{tmp_path / 'users.db'}",
        secret_key=SECRET,
        master_encryption_key=base64.b64encode(ENCRYPTION_KEY).decode("ascii"),
    )


@pytest.fixture()
def store(settings):
    engine = create_db_engine(settings.database_url)
    Base.metadata.create_all(engine)
    yield DocumentStore(engine, User)
    engine.dispose()


@pytest.fixture()
def hasher():
    return PasswordHasher(rounds=TEST_ROUNDS)


@pytest.fixture()
def codec():
    return TokenCodec(SECRET)


@pytest.fixture()
def credentials(store, hasher, codec):
    return CredentialService(store, hasher, codec, ENCRYPTION_KEY)


@pytest.fixture()
def users(store, hasher):
    return UserService(store, hasher, ENCRYPTION_KEY)


@pytest.fixture()
def app(settings, store, hasher):
    return create_app(settings, store=store, hasher=hasher)


@pytest.fixture()
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def admin_token(app):
    """Seed an admin directly through the service and log it in."""
    service = app.state.credentials
    service.register_admin("root@x.com", "rootpass1")
    return service.login_admin("root@x.com", "rootpass1").token


@pytest.fixture()
def user_token(client):
    res = client.post("/register", json={"email": "a@x.com", "password": "pw123456"})
    assert res.status_code == 201, res.text
    res = client.post("/login", json={"email": "a@x.com", "password": "pw123456"})
    assert res.status_code == 200, res.text
    return res.json()["token"]
