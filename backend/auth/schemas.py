# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""Pydantic request / response models for the auth endpoints."""

from typing import Optional

from pydantic import BaseModel, field_validator


# -- Requests --------------------------------------------------------------


def encodable_text(value):
    """Reject strings that cannot be stored as UTF-8 (e.g. lone surrogates)."""
    if isinstance(value, str):
        try:
            value.encode("utf-8")
        except UnicodeEncodeError:
            raise ValueError("text is not valid UTF-8")
    return value


class RegisterRequest(BaseModel):
    email: str
    password: str
    role: Optional[str] = None  # validated, never elevates (see CredentialService.register)

    @field_validator("email", "password", "role")
    @classmethod
    def check_encodable(cls, value):
        return encodable_text(value)


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email", "password")
    @classmethod
    def check_encodable(cls, value):
        return encodable_text(value)


class AdminRegisterRequest(BaseModel):
    email: str
    password: str

    @field_validator("email", "password")
    @classmethod
    def check_encodable(cls, value):
        return encodable_text(value)


# -- Responses -------------------------------------------------------------


class MessageResponse(BaseModel):
    message: str


class LoginResponse(BaseModel):
    token: str
    role: str
