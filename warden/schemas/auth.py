"""Pydantic schemas for authentication endpoints."""

import re
from typing import Annotated

from pydantic import AfterValidator, BaseModel, field_validator

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]{2,}$")
# 32-128 lowercase hex characters
TOKEN_PATTERN = r"^[a-f0-9]{32,128}$"

PASSWORD_MIN_LEN = 6
PASSWORD_RULES_MESSAGE = "Password must contain at least one lowercase letter, one uppercase letter, and one number"


def check_username(value: str) -> str:
    value = value.strip()
    if not 3 <= len(value) <= 30:
        raise ValueError("Username must be between 3 and 30 characters")
    if not USERNAME_PATTERN.match(value):
        raise ValueError("Username can only contain letters, numbers, and underscores")
    return value


def check_email(value: str) -> str:
    value = value.strip().lower()
    if len(value) > 256 or not EMAIL_PATTERN.match(value):
        raise ValueError("Please provide a valid email address")
    return value


def check_password(value: str) -> str:
    """Acceptance policy: at least 6 chars with a lowercase letter, an uppercase letter and a digit."""
    if len(value) < PASSWORD_MIN_LEN:
        raise ValueError(f"Password must be at least {PASSWORD_MIN_LEN} characters long")
    if not (any(c.islower() for c in value) and any(c.isupper() for c in value) and any(c.isdigit() for c in value)):
        raise ValueError(PASSWORD_RULES_MESSAGE)
    return value


Username = Annotated[str, AfterValidator(check_username)]
Email = Annotated[str, AfterValidator(check_email)]
Password = Annotated[str, AfterValidator(check_password)]


class RegisterRequest(BaseModel):
    username: Username
    email: Email
    password: Password


class LoginRequest(BaseModel):
    identifier: str
    password: str

    @field_validator("identifier")
    @classmethod
    def identifier_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Email or username is required")
        return value

    @field_validator("password")
    @classmethod
    def password_required(cls, value: str) -> str:
        if not value:
            raise ValueError("Password is required")
        return value


class EmailRequest(BaseModel):
    email: Email


class ResetPasswordRequest(BaseModel):
    password: Password
