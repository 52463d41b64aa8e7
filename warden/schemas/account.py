"""Pydantic schemas for account data and response envelopes."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, field_validator, model_validator

from warden.models.account import Role
from warden.schemas.auth import Password, Username


class AccountResponse(BaseModel):
    """Sanitized account: no password hash, no challenge tokens."""

    id: str
    username: str
    email: str
    is_email_confirmed: bool
    role: Role
    profile_picture: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class ApiResponse(BaseModel):
    """Success envelope shared by every endpoint."""

    success: bool = True
    message: str | None = None
    data: dict[str, Any] | None = None


class UpdateProfileRequest(BaseModel):
    username: Username | None = None
    profile_picture: str | None = None

    @field_validator("profile_picture")
    @classmethod
    def valid_url(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        if not value.startswith(("http://", "https://")) or len(value) > 2048:
            raise ValueError("Profile picture must be a valid URL")
        return value


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: Password

    @field_validator("current_password")
    @classmethod
    def current_required(cls, value: str) -> str:
        if not value:
            raise ValueError("Current password is required")
        return value

    @model_validator(mode="after")
    def passwords_differ(self) -> "ChangePasswordRequest":
        if self.new_password == self.current_password:
            raise ValueError("New password must be different from current password")
        return self


class DeleteAccountRequest(BaseModel):
    password: str

    @field_validator("password")
    @classmethod
    def password_required(cls, value: str) -> str:
        if not value:
            raise ValueError("Password is required to delete account")
        return value
