# sunnah_audio/models/user.py
"""
Database model for users.
Represents an account: credentials, profile and role.
"""
from enum import Enum

from tortoise import fields, models


class Role(str, Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    USER = "user"


class UserStatus(str, Enum):
    ACTIVE = "active"
    DISABLED = "disabled"


class User(models.Model):
    """
    User database model.

    Security:
    - Password is stored as an Argon2 hash, never in clear
    - Email is unique and stored lower-cased, so lookups are case-insensitive
    - Disabled users keep their row for audit but can no longer authenticate
    """
    id = fields.IntField(pk=True)
    name = fields.CharField(max_length=255)
    email = fields.CharField(max_length=255, unique=True, index=True)  # always lower-case
    password_hash = fields.CharField(max_length=255)
    role = fields.CharEnumField(Role, max_length=16, default=Role.USER)
    status = fields.CharEnumField(UserStatus, max_length=16, default=UserStatus.ACTIVE)
    address = fields.CharField(max_length=512, null=True)
    phone = fields.CharField(max_length=32, null=True)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "users"

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE
