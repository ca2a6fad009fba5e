"""Request/response schemas for admin session endpoints."""

from __future__ import annotations

from pydantic import EmailStr, Field, field_validator, model_validator

from boreview.schemas import CamelModel


class AdminLoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Normalize email to lowercase."""
        return v.lower().strip()


class AdminChangePasswordRequest(CamelModel):
    current_password: str = Field(..., min_length=1, max_length=128)
    new_password: str = Field(..., min_length=1, max_length=128)
    confirm_password: str = Field(..., min_length=1, max_length=128)

    @model_validator(mode="after")
    def passwords_match(self) -> AdminChangePasswordRequest:
        if self.new_password != self.confirm_password:
            msg = "Mật khẩu xác nhận không khớp"
            raise ValueError(msg)
        return self


class AdminUserResponse(CamelModel):
    id: str
    email: str
    name: str | None
    role: str


class AdminSessionResponse(CamelModel):
    success: bool = True
    user: AdminUserResponse
    token: str
