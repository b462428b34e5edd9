"""
Phone Verification Schemas

Shape checks (10-digit phone, 4-digit code) happen in the OTP service so the
error wording stays in one place; these models only normalize the payload.
"""

from pydantic import BaseModel, validator
from typing import Optional


def _as_text(v):
    if v is None:
        return v
    if isinstance(v, bool):
        raise ValueError("Expected a string of digits")
    if isinstance(v, int):
        return str(v)
    if isinstance(v, str):
        return v
    raise ValueError("Expected a string of digits")


class SendOTPRequest(BaseModel):
    phone: Optional[str] = None

    @validator("phone", pre=True)
    def normalize_phone(cls, v):
        return _as_text(v)


class VerifyOTPRequest(BaseModel):
    phone: Optional[str] = None
    otp: Optional[str] = None

    @validator("phone", "otp", pre=True)
    def normalize_digits(cls, v):
        return _as_text(v)
