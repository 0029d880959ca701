# sunnah_audio/schemas/auth.py
"""
Pydantic schemas for authentication and access-control endpoints.
Defines request/response models for accounts, passwords and scholar access.
"""
import datetime as dt
import re
from typing import Optional, List

from pydantic import BaseModel, ConfigDict, Field, field_validator

__all__ = [
    "MIN_PASSWORD_LENGTH",
    "RegisterIn",
    "LoginIn",
    "ProfileUpdateIn",
    "ChangePasswordIn",
    "ForgotPasswordIn",
    "ResetPasswordIn",
    "AccessChangeIn",
    "UserOut",
    "ScholarPermissionOut",
    "PermissionsOut",
    "AccessRowOut",
]

MIN_PASSWORD_LENGTH = 6
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _normalise_email(value: str) -> str:
    value = value.strip().lower()
    if not EMAIL_RE.match(value):
        raise ValueError("invalid email address")
    return value


class RegisterIn(BaseModel):
    """
    Request model for self-registration.
    A `role` key in the payload is ignored; new accounts are always users.
    """
    model_config = ConfigDict(extra="ignore")

    name: str = Field(min_length=1, max_length=255)
    email: str  # stored lower-case
    password: str = Field(min_length=MIN_PASSWORD_LENGTH)
    address: Optional[str] = Field(default=None, max_length=512)
    phone: Optional[str] = Field(default=None, max_length=32)

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        return _normalise_email(v)


class LoginIn(BaseModel):
    """Credentials for the login endpoint. No length rule here: a short password simply fails."""
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.strip().lower()


class ProfileUpdateIn(BaseModel):
    """Only provided fields are changed."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    address: Optional[str] = Field(default=None, max_length=512)
    phone: Optional[str] = Field(default=None, max_length=32)


class ChangePasswordIn(BaseModel):
    current_password: str
    new_password: str = Field(min_length=MIN_PASSWORD_LENGTH)


class ForgotPasswordIn(BaseModel):
    email: str

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        return _normalise_email(v)


class ResetPasswordIn(BaseModel):
    email: str
    otp: str = Field(min_length=1, max_length=16)
    new_password: str = Field(min_length=MIN_PASSWORD_LENGTH)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("otp")
    @classmethod
    def strip_otp(cls, v: str) -> str:
        return v.strip()


class AccessChangeIn(BaseModel):
    """Body of both grant and revoke."""
    user_id: int
    scholar_id: int


class UserOut(BaseModel):
    """
    Public view of an account. Never carries the password hash.
    """
    id: int
    name: str
    email: str
    address: Optional[str] = None
    phone: Optional[str] = None
    role: str
    created_at: dt.datetime
    updated_at: dt.datetime

    @classmethod
    def from_model(cls, user) -> "UserOut":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            address=user.address,
            phone=user.phone,
            role=user.role.value,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class ScholarPermissionOut(BaseModel):
    scholar_id: int
    scholar_name: str
    can_upload: bool
    can_download: bool
    can_manage: bool


class PermissionsOut(BaseModel):
    user_id: int
    role: str
    accessible_scholars: List[ScholarPermissionOut]


class AccessRowOut(BaseModel):
    id: int
    user_id: int
    scholar_id: int
    granted_by: Optional[int] = None
    created_at: dt.datetime
    updated_at: dt.datetime

    @classmethod
    def from_model(cls, row) -> "AccessRowOut":
        return cls(
            id=row.id,
            user_id=row.user_id,
            scholar_id=row.scholar_id,
            granted_by=row.granted_by_id,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )
