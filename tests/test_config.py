import base64

import pytest
from pydantic import ValidationError
from fastapi.testclient import TestClient

from core.config import Settings
from core.errors import InvalidKey
from main import create_app

import seed_admin

from conftest import ENCRYPTION_KEY, SECRET


def _settings(tmp_path, key, **extra):
    return Settings(
        _env_file=None,
        database_url=f"sqlite:///{tmp_path / 'users.db'}",
        secret_key=SECRET,
        master_encryption_key=key,
        **extra,
    )


def test_encryption_key_decodes(settings):
    assert settings.encryption_key == ENCRYPTION_KEY


def test_token_lifetime_defaults_to_24_hours(settings):
    assert settings.access_token_expire_minutes == 24 * 60


@pytest.mark.parametrize("key", [
    base64.b64encode(bytes(16)).decode(),
    base64.b64encode(bytes(33)).decode(),
    "your-32-byte-encryption-key-here",
    "%%%",
])
def test_bad_encryption_key(tmp_path, key):
    with pytest.raises(InvalidKey):
        _settings(tmp_path, key).encryption_key


def test_secrets_have_no_defaults(monkeypatch):
    for name in ("DATABASE_URL", "SECRET_KEY", "MASTER_ENCRYPTION_KEY"):
        monkeypatch.delenv(name, raising=False)
    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_app_refuses_bad_key(tmp_path, store, hasher):
    with pytest.raises(InvalidKey):
        create_app(_settings(tmp_path, base64.b64encode(bytes(8)).decode()), store=store, hasher=hasher)


def test_unreachable_database_is_fatal(app, store, monkeypatch):
    def unreachable():
        raise ConnectionError("database unreachable")

    monkeypatch.setattr(store, "ping", unreachable)
    with pytest.raises(ConnectionError):
        with TestClient(app):
            pass


def test_seed_admin(tmp_path, store, hasher, credentials):
    settings = _settings(
        tmp_path,
        base64.b64encode(ENCRYPTION_KEY).decode(),
        first_admin_email="root@x.com",
        first_admin_password="rootpass1",
    )
    assert seed_admin.seed(settings, store=store, hasher=hasher) is True
    assert seed_admin.seed(settings, store=store, hasher=hasher) is False
    assert store.count_documents({"role": "admin"}) == 1
    assert credentials.login_admin("root@x.com", "rootpass1").role == "admin"


def test_seed_admin_without_credentials(settings, store, hasher):
    assert seed_admin.seed(settings, store=store, hasher=hasher) is False
    assert store.count_documents({}) == 0
