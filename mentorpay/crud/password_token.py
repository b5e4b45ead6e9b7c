from __future__ import annotations

from datetime import timedelta
import secrets

from sqlalchemy.ext.asyncio import AsyncSession

from mentorpay.models.application import Application
from mentorpay.models.base import utcnow
from mentorpay.models.password_token import PasswordToken


async def mint_password_token(session: AsyncSession, *, app: Application, ttl_hours: int) -> PasswordToken:
    """Issue a fresh single-use password-setup token. Earlier tokens stay valid until they expire."""

    token = PasswordToken(
        application_id=app.id,
        email=app.email,
        token=secrets.token_urlsafe(32),
        expires_at=utcnow() + timedelta(hours=ttl_hours),
    )
    session.add(token)
    await session.commit()
    return token
