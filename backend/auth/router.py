# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
Auth endpoints – registration and login, plain and admin variants.

Security notes
--------------
* Login returns the *same* error message whether the email doesn't exist or
  the password is wrong.  This prevents user-enumeration attacks.
* Public registration never creates an admin.  New admins come from
  ``POST /admin/register``, which itself requires an admin token; the very
  first admin is created by ``bin/seed_admin.py``.
* No token is issued on registration; the client logs in afterwards.
"""

from fastapi import APIRouter, Depends, status

from auth.schemas import (
    AdminRegisterRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RegisterRequest,
)
from auth.service import CredentialService, get_credential_service
from core.security import Principal, require_admin

router = APIRouter(tags=["auth"])


# ---------------------------------------------------------------------------
# POST /register
# ---------------------------------------------------------------------------


@router.post("/register", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
def register(body: RegisterRequest, service: CredentialService = Depends(get_credential_service)):
    """Create a ``user`` account."""
    service.register(body.email, body.password, body.role)
    return MessageResponse(message="User registered successfully")


# ---------------------------------------------------------------------------
# POST /login
# ---------------------------------------------------------------------------


@router.post("/login", response_model=LoginResponse)
def login(body: LoginRequest, service: CredentialService = Depends(get_credential_service)):
    """Authenticate and return a signed JWT valid for 24 hours."""
    result = service.login(body.email, body.password)
    return LoginResponse(token=result.token, role=result.role)


# ---------------------------------------------------------------------------
# POST /admin/register  – admin-only
# ---------------------------------------------------------------------------


@router.post("/admin/register", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
def admin_register(
    body: AdminRegisterRequest,
    admin: Principal = Depends(require_admin),
    service: CredentialService = Depends(get_credential_service),
):
    """Create an ``admin`` account.  Caller must already be an admin."""
    service.register_admin(body.email, body.password)
    return MessageResponse(message="Admin registered successfully")


# ---------------------------------------------------------------------------
# POST /admin/login
# ---------------------------------------------------------------------------


@router.post("/admin/login", response_model=LoginResponse)
def admin_login(body: LoginRequest, service: CredentialService = Depends(get_credential_service)):
    """Like ``/login`` but refuses (403) accounts whose stored role is not admin."""
    result = service.login_admin(body.email, body.password)
    return LoginResponse(token=result.token, role=result.role)
