# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""Pydantic request / response models for the admin endpoints."""

from typing import List

from pydantic import BaseModel

from user.schemas import UserResponse


# -- Requests --------------------------------------------------------------


class ChangeRoleRequest(BaseModel):
    role: str  # "admin" or "user"


# -- Responses -------------------------------------------------------------


class UserListResponse(BaseModel):
    users: List[UserResponse]
    total: int
    page: int
    limit: int
    total_pages: int
