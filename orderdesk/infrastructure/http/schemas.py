from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class UserPayload(WireModel):
    id: str
    email: str
    name: str = ""
    role: str = "USER"
    status: str = "ACTIVE"
    is_email_verified: bool = False
    created_at: str = ""
    updated_at: str = ""
    profile_image_url: str | None = None
    last_login_at: str | None = None


class TokenPayload(WireModel):
    access_token: str = Field(..., min_length=1)
    session_id: str | None = None
    expires_at: str | None = None
    user: UserPayload | None = None


class OtpChallengePayload(WireModel):
    requires_otp: bool = True
    user_id: str = ""
    email: str = ""
    message: str = ""


class ErrorPayload(WireModel):
    status_code: int | None = None
    message: str | list[str] | None = None
    error: str | None = None
    errors: dict[str, list[str] | str] | None = None


class OrderPayload(WireModel):
    id: str
    status: str
    payment_status: str = "UNPAID"
    total_amount: Decimal = Decimal("0")
    updated_at: str = ""
    table_id: str | None = None
    venue_id: str | None = None
    organization_id: str | None = None


class LoginRequest(WireModel):
    email: str
    password: str
    fingerprint: str


class RegisterRequest(WireModel):
    email: str
    name: str
    password: str
    fingerprint: str


class VerifyOtpRequest(WireModel):
    email: str
    otp_code: str
    fingerprint: str


class RefreshSessionRequest(WireModel):
    fingerprint: str
    session_id: str | None = None


class MarkPaidRequest(WireModel):
    payment_method: str | None = None
    notes: str | None = None
