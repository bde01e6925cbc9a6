# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
Central security module.  All cryptographic primitives and auth guards live
here.  No other module should touch raw crypto directly.

Responsibilities
----------------
1. Password hashing / verification          (passlib pbkdf2_sha256)
2. Email field encryption / decryption      (AES-256-GCM)
3. Email lookup key                         (SHA-256)
4. Session tokens                           (PyJWT / HS256)
5. Access control gate + FastAPI guards     (get_current_principal, require_admin)

Nothing in this module reads configuration.  Keys and secrets are handed in
by ``main.create_app`` so that every collaborator is explicit.
"""

import base64
import binascii
import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import Literal, Optional

import jwt as _jwt        # PyJWT
from passlib.hash import pbkdf2_sha256 as _pbkdf2  # pure Python, no binary deps
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from fastapi import Depends, Header, Request
from pydantic import BaseModel, ValidationError

from core.errors import (
    DecryptionFailed,
    Forbidden,
    HashError,
    InvalidKey,
    MalformedCiphertext,
    TokenExpired,
    TokenInvalid,
    Unauthorized,
)
from core.logger import logger

Role = Literal["user", "admin"]
ROLES = ("user", "admin")

# ---------------------------------------------------------------------------
# 1.  pbkdf2_sha256 – password hashing
# ---------------------------------------------------------------------------
# passlib embeds a fresh random salt and the round count in every hash
# string, so two hashes of the same password never match byte-for-byte.
# ---------------------------------------------------------------------------

DEFAULT_ROUNDS = 600_000


class PasswordHasher:
    """Salted, adaptive one-way password hashing."""

    def __init__(self, rounds: int = DEFAULT_ROUNDS):
        self._handler = _pbkdf2.using(rounds=rounds)

    def hash(self, password: str) -> str:
        """Return a full passlib hash string, e.g. ``"$pbkdf2-sha256$..."``."""
        return self._handler.hash(password)

    def verify(self, password_hash: str, password: str) -> bool:
        """
        Constant-time comparison of *password* against *password_hash*.
        A mismatch returns False; only an unparseable stored hash raises.
        """
        try:
            return self._handler.verify(password, password_hash)
        except (ValueError, TypeError) as exc:
            raise HashError("stored password hash is malformed") from exc


# ---------------------------------------------------------------------------
# 2.  AES-256-GCM – email encryption at rest
# ---------------------------------------------------------------------------
# Token layout:  base64( 12-byte nonce || ciphertext || 16-byte GCM tag )
# The nonce travels with the ciphertext, so no side column is needed.
# ---------------------------------------------------------------------------

KEY_SIZE = 32
NONCE_SIZE = 12
TAG_SIZE = 16


def _check_key(key: bytes) -> None:
    if not isinstance(key, (bytes, bytearray)) or len(key) != KEY_SIZE:
        raise InvalidKey("encryption key must be exactly 32 bytes")


def encrypt_field(plaintext: str, key: bytes) -> str:
    """
    Encrypt *plaintext* with AES-256-GCM under a fresh random nonce.

    Encrypting the same value twice yields two different tokens.
    """
    _check_key(key)
    nonce = secrets.token_bytes(NONCE_SIZE)
    ct_and_tag = AESGCM(bytes(key)).encrypt(nonce, plaintext.encode("utf-8"), None)
    return base64.b64encode(nonce + ct_and_tag).decode("ascii")


def decrypt_field(token: str, key: bytes) -> str:
    """
    Decrypt a token produced by :func:`encrypt_field`.

    Raises ``MalformedCiphertext`` if the token is not base64 or is too short,
    and ``DecryptionFailed`` if the GCM tag does not verify (wrong key or
    tampered data).  Never returns partially decrypted text.
    """
    _check_key(key)
    try:
        raw = base64.b64decode(token, validate=True)
    except (binascii.Error, ValueError, TypeError) as exc:
        raise MalformedCiphertext("ciphertext is not valid base64") from exc
    if len(raw) < NONCE_SIZE + TAG_SIZE:
        raise MalformedCiphertext("ciphertext too short")

    nonce, ct_and_tag = raw[:NONCE_SIZE], raw[NONCE_SIZE:]
    try:
        plaintext_bytes = AESGCM(bytes(key)).decrypt(nonce, ct_and_tag, None)
    except InvalidTag as exc:
        raise DecryptionFailed("decryption failed – data may be tampered") from exc
    return plaintext_bytes.decode("utf-8")


# ---------------------------------------------------------------------------
# 3.  Email lookup key
# ---------------------------------------------------------------------------


def email_lookup_key(email: str) -> str:
    """
    Deterministic index value for *email*.  The same address always maps to
    the same key, so it can be used for uniqueness checks and login lookups
    without storing the address in searchable plaintext.
    """
    return hashlib.sha256(email.encode("utf-8")).hexdigest()


# ---------------------------------------------------------------------------
# 4.  JWT – session tokens
# ---------------------------------------------------------------------------

DEFAULT_TOKEN_TTL = timedelta(hours=24)


class Principal(BaseModel):
    """The authenticated caller, decoded from a verified session token."""

    user_id: str
    email: str
    role: Role
    expires_at: datetime

    model_config = {"frozen": True}

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class TokenCodec:
    """Issue and verify HS256-signed session tokens."""

    algorithm = "HS256"

    def __init__(self, secret: str, ttl: timedelta = DEFAULT_TOKEN_TTL):
        if not secret:
            raise ValueError("token signing secret must not be empty")
        self._secret = secret
        self.ttl = ttl

    def issue(self, user_id: str, email: str, role: str, ttl: Optional[timedelta] = None) -> str:
        now = datetime.now(timezone.utc)
        claims = {
            "user_id": user_id,
            "email": email,
            "role": role,
            "iat": now,
            "exp": now + (ttl if ttl is not None else self.ttl),
        }
        return _jwt.encode(claims, self._secret, algorithm=self.algorithm)

    def verify(self, token: str) -> Principal:
        """
        Check signature and expiry, then decode the claims into a
        :class:`Principal`.  Never consults persisted state.

        Raises ``TokenExpired`` for a well-signed token past its ``exp`` and
        ``TokenInvalid`` for everything else.
        """
        try:
            payload = _jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={"require": ["exp", "iat"]},
            )
        except _jwt.ExpiredSignatureError as exc:
            raise TokenExpired("token expired") from exc
        except _jwt.InvalidTokenError as exc:
            raise TokenInvalid("token invalid") from exc

        try:
            return Principal(
                user_id=payload.get("user_id"),
                email=payload.get("email"),
                role=payload.get("role"),
                expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            )
        except ValidationError as exc:
            raise TokenInvalid("token claims malformed") from exc


# ---------------------------------------------------------------------------
# 5.  Access control gate
# ---------------------------------------------------------------------------


class AccessGate:
    """
    Authenticate a bearer token and, optionally, require a role.

    Authentication always runs before authorization: a request with a bad
    token is rejected with 401 and never reaches the role check.
    """

    _BEARER = "bearer"

    def __init__(self, codec: TokenCodec):
        self._codec = codec

    def authenticate(self, authorization: Optional[str]) -> Principal:
        if not authorization or not authorization.strip():
            logger.warning("Gate rejected request: missing authorization header")
            raise Unauthorized("Authorization header required")

        scheme, _, token = authorization.strip().partition(" ")
        token = token.strip()
        if scheme.lower() != self._BEARER or not token:
            logger.warning("Gate rejected request: malformed authorization header")
            raise Unauthorized("Invalid or expired token")

        try:
            return self._codec.verify(token)
        except TokenExpired:
            logger.warning("Gate rejected request: token expired")
        except TokenInvalid:
            logger.warning("Gate rejected request: token invalid")
        raise Unauthorized("Invalid or expired token")

    def authorize(self, principal: Principal, role: Role = "admin") -> Principal:
        if principal.role != role:
            logger.warning("Gate rejected user %s: role %s lacks %s", principal.user_id, principal.role, role)
            raise Forbidden("Admin access required" if role == "admin" else "Access denied")
        return principal

    def check(self, authorization: Optional[str], role: Optional[Role] = None) -> Principal:
        principal = self.authenticate(authorization)
        if role is not None:
            self.authorize(principal, role)
        return principal


# -- FastAPI dependency guards ---------------------------------------------


def get_gate(request: Request) -> AccessGate:
    return request.app.state.gate


def get_current_principal(
    authorization: Optional[str] = Header(default=None),
    gate: AccessGate = Depends(get_gate),
) -> Principal:
    """
    Dependency: verify the bearer token once and hand the typed principal to
    the route.  Raises 401 on a missing, malformed, expired or forged token.
    """
    return gate.authenticate(authorization)


def require_admin(
    principal: Principal = Depends(get_current_principal),
    gate: AccessGate = Depends(get_gate),
) -> Principal:
    """
    Dependency: wraps :func:`get_current_principal` and additionally asserts
    ``role == 'admin'``.  Raises 403 otherwise.
    """
    return gate.authorize(principal, "admin")
