from datetime import date

from pydantic import BaseModel, Field, field_validator

from portal.domain.records import NotificationPreference


class ProfileUpdate(BaseModel):
    """Editable profile fields. Blank optional fields are stored as null."""
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    phone_number: str | None = None
    date_of_birth: date | None = None
    address: str | None = None

    @field_validator("first_name", "last_name")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("phone_number", "address", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @field_validator("date_of_birth", mode="before")
    @classmethod
    def _blank_date_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8)


class NotificationUpdate(BaseModel):
    is_read: bool = True


class NotificationPreferencesUpdate(BaseModel):
    preferences: list[NotificationPreference]
