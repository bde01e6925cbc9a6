# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""Pydantic request / response models for the profile endpoints."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from auth.schemas import encodable_text


class UpdateProfileRequest(BaseModel):
    # At least one must be non-empty; enforced by UserService.update_profile
    email: Optional[str] = None
    password: Optional[str] = None

    @field_validator("email", "password")
    @classmethod
    def check_encodable(cls, value):
        return encodable_text(value)


class UserResponse(BaseModel):
    id: str
    email: str  # decrypted for the response only
    role: str
    created_at: datetime
    updated_at: datetime
