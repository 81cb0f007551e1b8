from datetime import datetime
from typing import Literal

from pydantic import field_validator

from restoledger.schemas.common import CamelModel

Role = Literal["admin", "manager", "viewer"]

MIN_PASSWORD = 6


def _password_ok(v: str | None):
    if v is None:
        return None
    v = str(v)
    if len(v) < MIN_PASSWORD:
        raise ValueError(f"password must be at least {MIN_PASSWORD} characters")
    return v


class UserCreate(CamelModel):
    username: str
    password: str
    role: Role = "viewer"

    @field_validator("username")
    @classmethod
    def username_ok(cls, v: str):
        v = (v or "").strip().lower()
        if not v:
            raise ValueError("username is required")
        if len(v) > 64:
            raise ValueError("username too long")
        return v

    @field_validator("password")
    @classmethod
    def password_ok(cls, v):
        return _password_ok(v)


class UserUpdate(CamelModel):
    password: str | None = None
    role: Role | None = None

    @field_validator("password")
    @classmethod
    def password_ok(cls, v):
        return _password_ok(v)


class UserOut(CamelModel):
    id: int
    username: str
    role: Role
    restaurant_id: int | None
    is_superadmin: bool = False
    created_at: datetime | None = None
