"""User-related schemas: public profiles, sessions and account requests."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, field_validator

from .. import validators


class PublicUser(BaseModel):
    id: str
    name: str
    surname: str
    email: Optional[str] = None
    profile_pic: Optional[str] = None

    @property
    def complete_name(self) -> str:
        return f"{self.name} {self.surname}"


class UserSession(PublicUser):
    """What sign up and sign in answer with: the profile plus its token."""
    token: str


# ---------------------------------------------------------------------------
# Account requests
# ---------------------------------------------------------------------------

class SignInRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: str) -> str:
        if not validators.is_email_valid(value):
            raise ValueError("Wrong email")
        return value

    @field_validator("password")
    @classmethod
    def _check_password(cls, value: str) -> str:
        if not validators.is_password_valid(value):
            raise ValueError("Wrong password")
        return value


class SignUpRequest(SignInRequest):
    name: str
    surname: str

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        if not validators.is_name_valid(value):
            raise ValueError("Wrong name")
        return value

    @field_validator("surname")
    @classmethod
    def _check_surname(cls, value: str) -> str:
        if not validators.is_surname_valid(value):
            raise ValueError("Wrong surname")
        return value


class ChangeEmailRequest(BaseModel):
    email: str

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: str) -> str:
        if not validators.is_email_valid(value):
            raise ValueError("Wrong email")
        return value


class ChangePasswordRequest(BaseModel):
    password: str

    @field_validator("password")
    @classmethod
    def _check_password(cls, value: str) -> str:
        if not validators.is_password_valid(value):
            raise ValueError("Wrong password")
        return value
