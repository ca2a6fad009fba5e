"""Pydantic models for the contact form and newsletter."""

from __future__ import annotations

from pydantic import EmailStr, Field, field_validator

from boreview.schemas import CamelModel


def _length(value: str, low: int, high: int, too_short: str, too_long: str) -> str:
    value = value.strip()
    if len(value) < low:
        raise ValueError(too_short)
    if len(value) > high:
        raise ValueError(too_long)
    return value


class ContactRequest(CamelModel):
    name: str
    email: EmailStr
    subject: str
    message: str

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str) -> str:
        return _length(v, 2, 100, "Tên phải có ít nhất 2 ký tự", "Tên quá dài")

    @field_validator("subject")
    @classmethod
    def check_subject(cls, v: str) -> str:
        return _length(v, 5, 200, "Tiêu đề phải có ít nhất 5 ký tự", "Tiêu đề quá dài")

    @field_validator("message")
    @classmethod
    def check_message(cls, v: str) -> str:
        return _length(v, 10, 5000, "Nội dung phải có ít nhất 10 ký tự", "Nội dung quá dài")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower().strip()


class SubscribeRequest(CamelModel):
    email: EmailStr
    name: str | None = Field(None, max_length=100)
    source: str | None = Field(None, max_length=100)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower().strip()
