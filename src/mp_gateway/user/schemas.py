"""Account schemas for marketplace buyers, sellers and staff.

``location`` is the city a seller lists from; location-targeted promotions
match it exactly, so it is normalised on the way in. Router handlers wrap
every response model in ApiResponse.
"""

import re

from pydantic import BaseModel, EmailStr, Field, field_validator

_WHITESPACE = re.compile(r"\s+")


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=64, pattern=r"^[a-zA-Z0-9_]+$")
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    location: str | None = Field(None, max_length=64, examples=["Kraków"])

    @field_validator("password")
    @classmethod
    def password_complexity(cls, v: str) -> str:
        if not re.search(r"[A-Z]", v):
            raise ValueError("Password must contain at least one uppercase letter")
        if not re.search(r"[a-z]", v):
            raise ValueError("Password must contain at least one lowercase letter")
        if not re.search(r"\d", v):
            raise ValueError("Password must contain at least one digit")
        return v

    @field_validator("location")
    @classmethod
    def normalise_location(cls, v: str | None) -> str | None:
        """Collapse inner whitespace; a blank location means none given."""
        if v is None:
            return None
        v = _WHITESPACE.sub(" ", v).strip()
        if not v:
            return None
        if any(ch.isdigit() for ch in v):
            raise ValueError("Location must be a city name")
        return v


class LoginRequest(BaseModel):
    username: str
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


class AccountInfo(BaseModel):
    user_id: str
    username: str
    email: str
    role: str
    location: str | None = None


class RegisterResponse(AccountInfo):
    created_at: str


class LoginResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int = 1800
    user: AccountInfo


class RefreshResponse(BaseModel):
    access_token: str
    expires_in: int = 1800
