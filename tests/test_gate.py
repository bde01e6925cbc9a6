from datetime import timedelta

import pytest

from core.errors import Forbidden, Unauthorized
from core.security import AccessGate, TokenCodec

from conftest import OTHER_SECRET, bearer

USER_ID = "1" * 32
ADMIN_ID = "2" * 32


@pytest.fixture()
def gate(codec):
    return AccessGate(codec)


@pytest.mark.parametrize("header", [None, "", "   "])
def test_missing_header_is_unauthorized(gate, header):
    with pytest.raises(Unauthorized):
        gate.check(header)


@pytest.mark.parametrize("header", ["Bearer", "Bearer ", "Basic dXNlcjpwYXNz", "Bearer BOGUS", "Bearer a.b.c"])
def test_malformed_header_is_unauthorized(gate, header):
    with pytest.raises(Unauthorized):
        gate.check(header)


def test_expired_token_is_unauthorized(gate, codec):
    token = codec.issue(USER_ID, "a@x.com", "user", ttl=timedelta(seconds=-1))
    with pytest.raises(Unauthorized):
        gate.check(bearer(token)["Authorization"])


def test_foreign_signature_is_unauthorized(gate):
    token = TokenCodec(OTHER_SECRET).issue(ADMIN_ID, "root@x.com", "admin")
    with pytest.raises(Unauthorized):
        gate.check(f"Bearer {token}", role="admin")


def test_invalid_token_never_reaches_role_check(gate, codec):
    # A user-role token that has expired: 401, not 403
    token = codec.issue(USER_ID, "a@x.com", "user", ttl=timedelta(seconds=-1))
    with pytest.raises(Unauthorized):
        gate.check(f"Bearer {token}", role="admin")


def test_user_token_on_admin_route_is_forbidden(gate, codec):
    token = codec.issue(USER_ID, "a@x.com", "user")
    with pytest.raises(Forbidden):
        gate.check(f"Bearer {token}", role="admin")


def test_admin_token_proceeds_with_principal(gate, codec):
    token = codec.issue(ADMIN_ID, "root@x.com", "admin")
    principal = gate.check(f"Bearer {token}", role="admin")
    assert principal.user_id == ADMIN_ID
    assert principal.email == "root@x.com"
    assert principal.role == "admin"


def test_scheme_is_case_insensitive(gate, codec):
    token = codec.issue(USER_ID, "a@x.com", "user")
    assert gate.check(f"bearer {token}").user_id == USER_ID


def test_user_token_without_role_requirement_proceeds(gate, codec):
    token = codec.issue(USER_ID, "a@x.com", "user")
    assert gate.check(f"Bearer {token}").role == "user"


# -- over HTTP -------------------------------------------------------------


def test_http_missing_header(client):
    res = client.get("/admin/users")
    assert res.status_code == 401
    assert res.json() == {"error": "Authorization header required"}
    assert res.headers["WWW-Authenticate"] == "Bearer"


def test_http_bogus_token(client):
    res = client.get("/user/profile", headers={"Authorization": "Bearer BOGUS"})
    assert res.status_code == 401
    assert res.json() == {"error": "Invalid or expired token"}


def test_http_expired_and_forged_tokens_look_alike(client, codec):
    expired = codec.issue(USER_ID, "a@x.com", "user", ttl=timedelta(seconds=-1))
    forged = TokenCodec(OTHER_SECRET).issue(USER_ID, "a@x.com", "user")
    first = client.get("/user/profile", headers=bearer(expired))
    second = client.get("/user/profile", headers=bearer(forged))
    assert first.status_code == second.status_code == 401
    assert first.json() == second.json()


def test_http_user_token_on_admin_route(client, user_token):
    res = client.get("/admin/users", headers=bearer(user_token))
    assert res.status_code == 403
    assert res.json() == {"error": "Admin access required"}


def test_http_admin_token_on_admin_route(client, admin_token):
    res = client.get("/admin/users", headers=bearer(admin_token))
    assert res.status_code == 200


def test_http_gate_runs_before_body_validation(client):
    res = client.put("/admin/users/" + "1" * 32 + "/role", json={})
    assert res.status_code == 401
