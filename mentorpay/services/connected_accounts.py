from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from mentorpay.config import Settings
from mentorpay.crud.application import cache_connected_account, clear_connected_account, get_application
from mentorpay.errors import NotFound, ProcessorUnavailable
from mentorpay.models.application import Application
from mentorpay.models.enums import ApplicantKind
from mentorpay.schemas.payments import AccountStatusRead
from mentorpay.services.payment_gateway import PaymentGateway


logger = logging.getLogger("mentorpay.connect")


class ConnectedAccountManager:
    """Per-coach Stripe Express accounts.

    Only the account id is cached locally. Onboarding flags change on Stripe's
    side, so they are always read live.
    """

    def __init__(self, *, settings: Settings, gateway: PaymentGateway) -> None:
        self._settings = settings
        self._gateway = gateway

    async def _get_coach(self, session: AsyncSession, coach_id: UUID, *, refresh: bool = False) -> Application:
        coach = await get_application(session, application_id=coach_id, kind=ApplicantKind.COACH, refresh=refresh)
        if coach is None:
            raise NotFound("Coach not found")
        return coach

    async def ensure_account(self, session: AsyncSession, *, coach_id: UUID, email: str | None = None) -> str:
        coach = await self._get_coach(session, coach_id)
        if coach.connected_account_id:
            return coach.connected_account_id

        # No transaction is held open across the processor call.
        await session.commit()
        account_id = await self._gateway.create_connected_account(email=email or coach.email, coach_id=str(coach.id))

        if await cache_connected_account(session, coach_id=coach.id, account_id=account_id):
            await self._get_coach(session, coach_id, refresh=True)
            return account_id

        # Another request cached an id while we were talking to Stripe; keep theirs.
        coach = await self._get_coach(session, coach_id, refresh=True)
        logger.warning(
            "connected_account race coach_id=%s kept=%s orphaned=%s",
            coach.id,
            coach.connected_account_id,
            account_id,
        )
        if not coach.connected_account_id:
            raise ProcessorUnavailable("Could not persist connected account; retry")
        return coach.connected_account_id

    async def onboarding_link(self, session: AsyncSession, *, coach_id: UUID) -> tuple[str, str]:
        account_id = await self.ensure_account(session, coach_id=coach_id)
        base = self._settings.public_base_url
        url = await self._gateway.create_account_link(
            account_id=account_id,
            refresh_url=f"{base}/coach-dashboard?stripe_refresh=true",
            return_url=f"{base}/coach-dashboard?stripe_onboarding=complete",
        )
        logger.info("onboarding_link issued coach_id=%s account_id=%s", coach_id, account_id)
        return account_id, url

    async def account_status(self, session: AsyncSession, *, coach_id: UUID) -> AccountStatusRead:
        coach = await self._get_coach(session, coach_id)
        if not coach.connected_account_id:
            return AccountStatusRead(has_account=False)

        flags = await self._gateway.retrieve_account(coach.connected_account_id)
        return AccountStatusRead(
            has_account=True,
            onboarding_complete=flags.onboarding_complete,
            charges_enabled=flags.charges_enabled,
            payouts_enabled=flags.payouts_enabled,
        )

    async def reset_account(self, session: AsyncSession, *, coach_id: UUID) -> str | None:
        """Forget the cached account id. The Stripe account itself is left alone."""

        coach = await self._get_coach(session, coach_id)
        previous = await clear_connected_account(session, coach=coach)
        logger.info("connected_account reset coach_id=%s previous=%s", coach_id, previous)
        return previous
