from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from portal.domain.records import UserRole

if TYPE_CHECKING:
    from portal.store import UserAccount

ACTIVE = "active"
SUSPENDED = "suspended"


class UserSummary(BaseModel):
    """One row of the admin user table."""
    id: str
    email: str
    first_name: str
    last_name: str
    full_name: str
    phone_number: str | None = None
    role: UserRole
    status: str
    is_active: bool
    is_verified: bool
    last_login: datetime | None = None
    created_at: datetime

    @classmethod
    def from_account(cls, account: UserAccount) -> UserSummary:
        profile = account.profile
        return cls(
            id=profile.id,
            email=profile.email,
            first_name=profile.first_name,
            last_name=profile.last_name,
            full_name=profile.full_name,
            phone_number=profile.phone_number,
            role=profile.role,
            status=ACTIVE if account.is_active else SUSPENDED,
            is_active=account.is_active,
            is_verified=profile.is_verified,
            last_login=account.last_login,
            created_at=profile.created_at,
        )


class UserUpdate(BaseModel):
    first_name: str | None = Field(None, min_length=1)
    last_name: str | None = Field(None, min_length=1)
    phone_number: str | None = None
    role: UserRole | None = None
    is_verified: bool | None = None


class SuspendRequest(BaseModel):
    reason: str = Field(..., min_length=10)
