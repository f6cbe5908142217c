from pydantic import BaseModel, EmailStr, Field, field_validator

from portal.domain.records import UserProfile


# ── Registration ─────────────────────────────────────────────

class RegisterRequest(BaseModel):
    """Citizen self-registration. Staff accounts are created by an admin."""
    email: EmailStr
    password: str = Field(..., min_length=8)
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    phone_number: str | None = None
    address: str | None = None

    @field_validator("first_name", "last_name")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


# ── Login ────────────────────────────────────────────────────

class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserProfile
