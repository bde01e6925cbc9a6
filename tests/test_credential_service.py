import threading

import pytest

from core.errors import BadRequest, Conflict, Forbidden, Internal, Unauthorized
from core.security import decrypt_field, email_lookup_key

from conftest import ENCRYPTION_KEY


def test_register_stores_no_plaintext(credentials, store):
    user_id = credentials.register("a@x.com", "pw123456")
    record = store.find_one({"id": user_id})

    assert len(user_id) == 32
    assert record["email_hash"] == email_lookup_key("a@x.com")
    assert record["email"] != "a@x.com"
    assert decrypt_field(record["email"], ENCRYPTION_KEY) == "a@x.com"
    assert record["password_hash"] != "pw123456"
    assert "pw123456" not in record["password_hash"]
    assert record["role"] == "user"
    assert record["created_at"] == record["updated_at"]


def test_lookup_key_is_deterministic():
    assert email_lookup_key("a@x.com") == email_lookup_key("a@x.com")
    assert email_lookup_key("a@x.com") != email_lookup_key("b@x.com")


def test_register_then_login(credentials, codec):
    credentials.register("a@x.com", "pw123456")
    result = credentials.login("a@x.com", "pw123456")

    assert result.role == "user"
    principal = codec.verify(result.token)
    assert principal.email == "a@x.com"
    assert principal.role == "user"


def test_duplicate_registration_conflicts(credentials):
    credentials.register("a@x.com", "pw123456")
    with pytest.raises(Conflict):
        credentials.register("a@x.com", "another-password")
    with pytest.raises(Conflict):
        credentials.register_admin("a@x.com", "another-password")


@pytest.mark.parametrize("email,password", [("", "pw123456"), ("   ", "pw123456"), ("a@x.com", ""), (None, None)])
def test_register_requires_credentials(credentials, email, password):
    with pytest.raises(BadRequest):
        credentials.register(email, password)


def test_public_registration_cannot_self_elevate(credentials, store):
    user_id = credentials.register("sneaky@x.com", "pw123456", role="admin")
    assert store.find_one({"id": user_id})["role"] == "user"
    assert credentials.login("sneaky@x.com", "pw123456").role == "user"
    with pytest.raises(Forbidden):
        credentials.login_admin("sneaky@x.com", "pw123456")


def test_public_registration_rejects_unknown_role(credentials, store):
    with pytest.raises(BadRequest):
        credentials.register("a@x.com", "pw123456", role="superuser")
    assert store.count_documents({}) == 0


def test_wrong_password_and_unknown_user_fail_identically(credentials):
    credentials.register("a@x.com", "pw123456")
    with pytest.raises(Unauthorized) as wrong_password:
        credentials.login("a@x.com", "wrong-password")
    with pytest.raises(Unauthorized) as unknown_user:
        credentials.login("nobody@x.com", "pw123456")
    assert wrong_password.value.reason == unknown_user.value.reason == "Invalid credentials"


def test_admin_register_and_login(credentials, codec):
    credentials.register_admin("root@x.com", "rootpass1")
    result = credentials.login_admin("root@x.com", "rootpass1")
    assert result.role == "admin"
    assert codec.verify(result.token).is_admin


def test_admin_can_use_plain_login(credentials):
    credentials.register_admin("root@x.com", "rootpass1")
    assert credentials.login("root@x.com", "rootpass1").role == "admin"


def test_admin_login_checks_password_before_role(credentials):
    credentials.register("a@x.com", "pw123456")
    # Without the password nothing about the account's role is revealed
    with pytest.raises(Unauthorized):
        credentials.login_admin("a@x.com", "wrong-password")
    with pytest.raises(Forbidden):
        credentials.login_admin("a@x.com", "pw123456")


def test_corrupt_stored_email_is_internal_error(credentials, store):
    user_id = credentials.register("a@x.com", "pw123456")
    store.update_one({"id": user_id}, {"email": "garbage"})
    with pytest.raises(Internal) as exc:
        credentials.login("a@x.com", "pw123456")
    assert exc.value.reason == "Failed to decrypt data"


def test_corrupt_stored_hash_is_internal_error(credentials, store):
    user_id = credentials.register("a@x.com", "pw123456")
    store.update_one({"id": user_id}, {"password_hash": "not-a-hash"})
    with pytest.raises(Internal):
        credentials.login("a@x.com", "pw123456")


def test_concurrent_registration_race_is_not_prevented(credentials, store, monkeypatch):
    """
    Uniqueness is check-then-insert with no lock or unique index.  When two
    registrations both finish their existence check before either inserts,
    both succeed and the address ends up stored twice.
    """
    barrier = threading.Barrier(2)
    real_find_one = store.find_one

    def find_one_then_wait(filter):
        found = real_find_one(filter)
        barrier.wait(timeout=5)
        return found

    monkeypatch.setattr(store, "find_one", find_one_then_wait)

    errors = []

    def register():
        try:
            credentials.register("race@x.com", "pw123456")
        except Exception as exc:  # collected for the assertion below
            errors.append(exc)

    threads = [threading.Thread(target=register) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)

    assert errors == []
    assert store.count_documents({"email_hash": email_lookup_key("race@x.com")}) == 2
