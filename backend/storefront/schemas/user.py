from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

EMAIL_PATTERN = r"^\S+@\S+\.\S+$"
PHONE_PATTERN = r"^\+?[1-9]\d{1,14}$"


def _normalize_email(value: str) -> str:
    return value.strip().lower()


def _strong_password(value: str) -> str:
    if not any(c.islower() for c in value) or not any(c.isupper() for c in value) or not any(c.isdigit() for c in value):
        raise ValueError("password must contain an uppercase letter, a lowercase letter and a digit")
    return value


def _blank_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


class RegisterIn(BaseModel):
    first_name: str = Field(min_length=2, max_length=50)
    last_name: str = Field(min_length=2, max_length=50)
    email: str = Field(max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(min_length=8, max_length=100)
    phone: str | None = Field(default=None, max_length=20)

    @field_validator("first_name", "last_name")
    @classmethod
    def strip_names(cls, value: str) -> str:
        return value.strip()

    @field_validator("email")
    @classmethod
    def lower_email(cls, value: str) -> str:
        return _normalize_email(value)

    @field_validator("password")
    @classmethod
    def password_policy(cls, value: str) -> str:
        return _strong_password(value)

    @field_validator("phone")
    @classmethod
    def phone_format(cls, value: str | None) -> str | None:
        value = _blank_to_none(value)
        if value is not None:
            digits = value[1:] if value.startswith("+") else value
            if not digits.isdigit() or digits[0] == "0" or not 2 <= len(digits) <= 15:
                raise ValueError("invalid phone format")
        return value


class UserCreate(RegisterIn):
    role_id: int = Field(ge=1)


class LoginIn(BaseModel):
    email: str = Field(max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def lower_email(cls, value: str) -> str:
        return _normalize_email(value)


class ProfileUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    first_name: str | None = Field(default=None, min_length=2, max_length=50)
    last_name: str | None = Field(default=None, min_length=2, max_length=50)
    phone: str | None = Field(default=None, max_length=20, pattern=r"^(\+?[1-9]\d{1,14})?$")
    profile_image: str | None = Field(default=None, max_length=500)


class UserUpdate(ProfileUpdate):
    role_id: int | None = Field(default=None, ge=1)
    is_active: bool | None = None


class UserOut(BaseModel):
    id: int
    tenant_id: int
    role_id: int
    first_name: str
    last_name: str
    full_name: str
    email: str
    phone: str | None = None
    is_active: bool
    profile_image: str | None = None
    last_login: datetime | None = None
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class AuthOut(BaseModel):
    """{"success", "message", "statusCode", "user", "token"}"""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str = ""
    status_code: int = Field(default=200, serialization_alias="statusCode")
    user: UserOut
    token: str
