# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
Admin endpoints – user lifecycle management.

Every endpoint in this router is guarded by ``require_admin``.  A request
that carries a valid JWT but belongs to a ``user`` role will receive 403
before any business logic runs; a request without a valid JWT gets 401 and
never reaches the role check.
"""

from fastapi import APIRouter, Depends, Query

from admin.schemas import ChangeRoleRequest, UserListResponse
from auth.schemas import MessageResponse
from auth.service import DEFAULT_PAGE_SIZE, UserService, get_user_service
from core.security import Principal, require_admin

router = APIRouter(prefix="/admin", tags=["admin"])


# ---------------------------------------------------------------------------
# GET /admin/users  – paginated list
# ---------------------------------------------------------------------------


@router.get("/users", response_model=UserListResponse)
def list_users(
    page: int = Query(1, description="Page number, 1-based"),
    limit: int = Query(DEFAULT_PAGE_SIZE, description="Items per page, 1–100"),
    admin: Principal = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    """Return users newest-first with decrypted emails (no password data)."""
    return service.list_users(page, limit)


# ---------------------------------------------------------------------------
# DELETE /admin/users/{id}
# ---------------------------------------------------------------------------


@router.delete("/users/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: str,
    admin: Principal = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    """Guard: an admin cannot delete their own account."""
    service.delete_user(admin, user_id)
    return MessageResponse(message="User deleted successfully")


# ---------------------------------------------------------------------------
# PUT /admin/users/{id}/role  – promote or demote a user
# ---------------------------------------------------------------------------


@router.put("/users/{user_id}/role", response_model=MessageResponse)
def update_user_role(
    user_id: str,
    body: ChangeRoleRequest,
    admin: Principal = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    service.update_user_role(admin, user_id, body.role)
    return MessageResponse(message="User role updated successfully")
