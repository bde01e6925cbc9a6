# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
Profile self-service.  Any valid token, either role.

The caller is identified by the principal the gate decoded from the token;
the request body never names a user id.
"""

from fastapi import APIRouter, Depends

from auth.schemas import MessageResponse
from auth.service import UserService, get_user_service
from core.security import Principal, get_current_principal
from user.schemas import UpdateProfileRequest, UserResponse

router = APIRouter(prefix="/user", tags=["user"])


@router.get("/profile", response_model=UserResponse)
def get_profile(
    principal: Principal = Depends(get_current_principal),
    service: UserService = Depends(get_user_service),
):
    return service.get_profile(principal)


@router.put("/profile", response_model=MessageResponse)
def update_profile(
    body: UpdateProfileRequest,
    principal: Principal = Depends(get_current_principal),
    service: UserService = Depends(get_user_service),
):
    """Change the caller's email and/or password (409 if another account holds the email)."""
    service.update_profile(principal, body.email, body.password)
    return MessageResponse(message="Profile updated successfully")
