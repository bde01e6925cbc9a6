# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
Credential and user-management services.

``CredentialService`` owns registration and login; ``UserService`` owns the
profile self-service and admin user-management operations.  Both are built
once by ``main.create_app`` and receive every collaborator explicitly:

* a ``DocumentStore`` over the ``users`` table
* the ``PasswordHasher``
* the ``TokenCodec``
* the 32-byte email encryption key

Security notes
--------------
* Login returns the *same* error whether the address is unknown or the
  password is wrong, and runs a hash verification in both cases.
* Stored emails are AES-256-GCM ciphertext; lookups go through
  ``email_hash``.  Plaintext is only ever produced for a response or a token.
* Uniqueness is check-then-insert.  Two concurrent registrations of the same
  address can both pass the check; nothing below the service prevents it.
"""

import math
import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from fastapi import Request

from core.errors import (
    BadRequest,
    CipherError,
    Conflict,
    Forbidden,
    HashError,
    Internal,
    NotFound,
    Unauthorized,
)
from core.logger import logger
from core.security import (
    ROLES,
    PasswordHasher,
    Principal,
    TokenCodec,
    decrypt_field,
    email_lookup_key,
    encrypt_field,
)
from database import DocumentStore

# Generic message used for both "no such email" and "wrong password"
_LOGIN_FAIL = "Invalid credentials"

_USER_ID_RE = re.compile(r"[0-9a-f]{32}")

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class LoginResult:
    token: str
    role: str


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _key_tag(lookup_key: str) -> str:
    # Enough to correlate log lines, not enough to brute-force the address
    return lookup_key[:12]


def _decrypt_email(ciphertext: str, key: bytes) -> str:
    try:
        return decrypt_field(ciphertext, key)
    except CipherError as exc:
        logger.error("Email decryption failed: %s", exc.__class__.__name__)
        raise Internal("Failed to decrypt data") from exc


def _encrypt_email(email: str, key: bytes) -> str:
    try:
        return encrypt_field(email, key)
    except CipherError as exc:
        logger.error("Email encryption failed: %s", exc.__class__.__name__)
        raise Internal("Failed to encrypt data") from exc


# ---------------------------------------------------------------------------
# Registration / login
# ---------------------------------------------------------------------------


class CredentialService:
    def __init__(self, store: DocumentStore, hasher: PasswordHasher, codec: TokenCodec, encryption_key: bytes):
        self._store = store
        self._hasher = hasher
        self._codec = codec
        self._key = encryption_key
        # Verified against when the address is unknown, so both failure
        # paths cost one hash computation.
        self._decoy_hash = hasher.hash(uuid.uuid4().hex)

    @staticmethod
    def _require_credentials(email: Optional[str], password: Optional[str]) -> None:
        if not email or not email.strip() or not password:
            raise BadRequest("Email and password are required")

    # -- registration ------------------------------------------------------

    def register(self, email: str, password: str, role: Optional[str] = None) -> str:
        """
        Public self-registration.  Always creates a ``user``.

        *role* is accepted for payload compatibility and validated, but an
        ``admin`` value is not honoured here; admins are created through
        :meth:`register_admin` only.
        """
        self._require_credentials(email, password)
        if role is not None and role not in ROLES:
            raise BadRequest("Invalid role. Must be 'user' or 'admin'")
        if role == "admin":
            logger.warning("Ignored role=admin on public registration")
        return self._create(email, password, "user")

    def register_admin(self, email: str, password: str) -> str:
        self._require_credentials(email, password)
        return self._create(email, password, "admin")

    def _create(self, email: str, password: str, role: str) -> str:
        lookup_key = email_lookup_key(email)
        if self._store.find_one({"email_hash": lookup_key}) is not None:
            logger.info("Registration rejected, key %s already exists", _key_tag(lookup_key))
            raise Conflict("User already exists")

        password_hash = self._hasher.hash(password)
        encrypted_email = _encrypt_email(email, self._key)

        now = _now()
        user_id = uuid.uuid4().hex
        self._store.insert_one({
            "id": user_id,
            "email_hash": lookup_key,
            "email": encrypted_email,
            "password_hash": password_hash,
            "role": role,
            "created_at": now,
            "updated_at": now,
        })
        logger.info("Registered %s %s", role, user_id)
        return user_id

    # -- login -------------------------------------------------------------

    def login(self, email: str, password: str) -> LoginResult:
        return self._login(email, password, admin_only=False)

    def login_admin(self, email: str, password: str) -> LoginResult:
        return self._login(email, password, admin_only=True)

    def _login(self, email: str, password: str, admin_only: bool) -> LoginResult:
        self._require_credentials(email, password)
        lookup_key = email_lookup_key(email)
        user = self._store.find_one({"email_hash": lookup_key})

        try:
            if user is None:
                self._hasher.verify(self._decoy_hash, password)
                verified = False
            else:
                verified = self._hasher.verify(user["password_hash"], password)
        except HashError as exc:
            logger.error("Unreadable password hash for %s", user["id"])
            raise Internal() from exc

        # Unified failure path – no information leaks about whether the email exists
        if not verified:
            logger.info("Login failed for key %s", _key_tag(lookup_key))
            raise Unauthorized(_LOGIN_FAIL)

        if admin_only and user["role"] != "admin":
            logger.warning("Admin login refused for %s (role=%s)", user["id"], user["role"])
            raise Forbidden("Access denied: Admin only")

        plain_email = _decrypt_email(user["email"], self._key)
        token = self._codec.issue(user["id"], plain_email, user["role"])
        logger.info("Login succeeded for %s (role=%s)", user["id"], user["role"])
        return LoginResult(token=token, role=user["role"])


# ---------------------------------------------------------------------------
# Profile and admin user management
# ---------------------------------------------------------------------------


class UserService:
    def __init__(self, store: DocumentStore, hasher: PasswordHasher, encryption_key: bytes):
        self._store = store
        self._hasher = hasher
        self._key = encryption_key

    @staticmethod
    def _check_id(user_id: str) -> None:
        if not _USER_ID_RE.fullmatch(user_id or ""):
            raise BadRequest("Invalid user ID format")

    def _public(self, user: dict) -> dict:
        """Response view of a stored record: decrypted email, no secrets."""
        return {
            "id": user["id"],
            "email": _decrypt_email(user["email"], self._key),
            "role": user["role"],
            "created_at": user["created_at"],
            "updated_at": user["updated_at"],
        }

    # -- self-service ------------------------------------------------------

    def get_profile(self, principal: Principal) -> dict:
        user = self._store.find_one({"id": principal.user_id})
        if user is None:
            raise NotFound("User not found")
        return self._public(user)

    def update_profile(self, principal: Principal, email: Optional[str] = None,
                       password: Optional[str] = None) -> None:
        """
        Change the caller's email, password, or both.  An empty value counts
        as absent; at least one must be given.  A new email rewrites both the
        lookup key and the ciphertext.  Tokens already issued keep the old
        address until expiry.
        """
        if email is not None and not email.strip():
            email = None
        if not password:
            password = None
        if email is None and password is None:
            raise BadRequest("Email or password is required")

        patch = {"updated_at": _now()}
        if email is not None:
            lookup_key = email_lookup_key(email)
            taken = self._store.count_documents({"email_hash": lookup_key, "id": {"$ne": principal.user_id}})
            if taken:
                raise Conflict("Email already in use")
            patch["email"] = _encrypt_email(email, self._key)
            patch["email_hash"] = lookup_key
        if password is not None:
            patch["password_hash"] = self._hasher.hash(password)

        if not self._store.update_one({"id": principal.user_id}, patch):
            raise NotFound("User not found")
        logger.info("Profile updated for %s (email=%s, password=%s)", principal.user_id, email is not None, password is not None)

    # -- admin -------------------------------------------------------------

    def list_users(self, page: int = 1, limit: int = DEFAULT_PAGE_SIZE) -> dict:
        """Newest-first page of users.  Out-of-range arguments fall back to defaults."""
        if page < 1:
            page = 1
        if limit < 1 or limit > MAX_PAGE_SIZE:
            limit = DEFAULT_PAGE_SIZE

        total = self._store.count_documents({})
        skip = (page - 1) * limit
        # Past the last page there is nothing to fetch; also keeps huge
        # offsets away from the driver.
        rows = []
        if skip < total:
            rows = self._store.find({}, skip=skip, limit=limit, sort="created_at", descending=True)
        return {
            "users": [self._public(row) for row in rows],
            "total": total,
            "page": page,
            "limit": limit,
            "total_pages": math.ceil(total / limit),
        }

    def delete_user(self, admin: Principal, user_id: str) -> None:
        self._check_id(user_id)
        if user_id == admin.user_id:
            raise BadRequest("Cannot delete yourself")
        if not self._store.delete_one({"id": user_id}):
            raise NotFound("User not found")
        logger.info("Admin %s deleted user %s", admin.user_id, user_id)

    def update_user_role(self, admin: Principal, user_id: str, role: str) -> None:
        """
        Guards:
        * Role value must be 'admin' or 'user'.
        * An admin cannot change their own role (prevents accidental self-lockout).
        """
        if role not in ROLES:
            raise BadRequest("Invalid role. Must be 'user' or 'admin'")
        self._check_id(user_id)
        if user_id == admin.user_id:
            raise BadRequest("Cannot change your own role")
        if not self._store.update_one({"id": user_id}, {"role": role, "updated_at": _now()}):
            raise NotFound("User not found")
        logger.info("Admin %s set role of %s to %s", admin.user_id, user_id, role)


# -- FastAPI dependencies --------------------------------------------------


def get_credential_service(request: Request) -> CredentialService:
    return request.app.state.credentials


def get_user_service(request: Request) -> UserService:
    return request.app.state.users
