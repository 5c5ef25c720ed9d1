from __future__ import annotations

from orderdesk.application.dto.auth import OtpChallenge, SessionTokens
from orderdesk.domain.entities.order import Order, OrderPaymentStatus, OrderStatus
from orderdesk.domain.entities.user import User
from orderdesk.infrastructure.http.schemas import OrderPayload, OtpChallengePayload, TokenPayload, UserPayload


def to_user(payload: UserPayload) -> User:
    return User(
        id=payload.id,
        email=payload.email,
        name=payload.name,
        role=payload.role,
        status=payload.status.upper(),
        is_email_verified=payload.is_email_verified,
        created_at=payload.created_at,
        updated_at=payload.updated_at,
        profile_image_url=payload.profile_image_url,
        last_login_at=payload.last_login_at,
    )


def to_session_tokens(payload: TokenPayload) -> SessionTokens:
    return SessionTokens(
        access_token=payload.access_token,
        session_id=payload.session_id,
        expires_at=payload.expires_at,
        user=to_user(payload.user) if payload.user is not None else None,
    )


def to_otp_challenge(payload: OtpChallengePayload) -> OtpChallenge:
    return OtpChallenge(user_id=payload.user_id, email=payload.email, message=payload.message)


def to_order(payload: OrderPayload) -> Order:
    return Order(
        id=payload.id,
        status=OrderStatus(payload.status.upper()),
        payment_status=OrderPaymentStatus(payload.payment_status.upper()),
        total_amount=payload.total_amount,
        updated_at=payload.updated_at,
        table_id=payload.table_id,
        venue_id=payload.venue_id,
        organization_id=payload.organization_id,
    )
