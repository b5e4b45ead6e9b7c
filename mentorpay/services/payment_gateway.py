"""Payment processor boundary.

`StripeGateway` is the only module that talks to Stripe. Services depend on the
`PaymentGateway` protocol so the processor can be swapped for an in-memory fake.
Every Stripe failure surfaces as `ProcessorUnavailable`.
"""

from __future__ import annotations

from dataclasses import dataclass
import json
import logging
from typing import Any, Protocol

from starlette.concurrency import run_in_threadpool
import stripe

from mentorpay.config import Settings
from mentorpay.errors import InvalidSignature, MalformedEvent, ProcessorUnavailable


logger = logging.getLogger("mentorpay.stripe")


@dataclass(frozen=True)
class AccountFlags:
    account_id: str
    details_submitted: bool
    charges_enabled: bool
    payouts_enabled: bool

    @property
    def onboarding_complete(self) -> bool:
        return self.details_submitted and self.charges_enabled


@dataclass(frozen=True)
class SessionRef:
    id: str
    url: str


class PaymentGateway(Protocol):
    async def create_connected_account(self, *, email: str, coach_id: str) -> str: ...

    async def create_account_link(self, *, account_id: str, refresh_url: str, return_url: str) -> str: ...

    async def retrieve_account(self, account_id: str) -> AccountFlags: ...

    async def create_customer(self, *, email: str, name: str | None, metadata: dict[str, str]) -> str: ...

    async def create_checkout_session(self, params: dict[str, Any]) -> SessionRef: ...

    async def create_billing_portal_session(self, *, customer_id: str, return_url: str) -> str: ...


def verify_webhook_event(payload: bytes, signature: str | None, *, secret: str | None, tolerance: int) -> dict[str, Any]:
    """Check the Stripe-Signature header and decode the event envelope.

    Pure CPU work: nothing here touches the data store.
    """

    if not secret:
        raise InvalidSignature("Webhook secret not configured")
    if not signature:
        raise InvalidSignature("Missing Stripe-Signature header")

    try:
        stripe.WebhookSignature.verify_header(payload, signature, secret, tolerance)
    except stripe.SignatureVerificationError as e:
        logger.warning("Invalid webhook signature: %s", e)
        raise InvalidSignature("Invalid webhook signature") from e

    try:
        event = json.loads(payload)
    except ValueError as e:
        raise MalformedEvent("Webhook payload is not valid JSON") from e

    if not isinstance(event, dict) or not isinstance(event.get("type"), str):
        raise MalformedEvent("Webhook payload is not an event envelope")
    return event


class StripeGateway:
    def __init__(self, *, api_key: str | None) -> None:
        # Passed per request; the stripe module's global api_key is never set.
        self._api_key = api_key

    @classmethod
    def from_settings(cls, settings: Settings) -> "StripeGateway":
        key = settings.stripe_secret_key.get_secret_value() if settings.stripe_secret_key else None
        if not key:
            logger.warning("Stripe secret key not configured - processor calls will fail")
        return cls(api_key=key)

    async def _call(self, operation: str, fn, *args: Any, **kwargs: Any) -> Any:
        if not self._api_key:
            raise ProcessorUnavailable("Stripe is not configured")
        try:
            return await run_in_threadpool(fn, *args, api_key=self._api_key, **kwargs)
        except stripe.StripeError as e:
            logger.error("stripe_error operation=%s error=%s", operation, e)
            raise ProcessorUnavailable(f"Payment processor error during {operation}") from e

    async def create_connected_account(self, *, email: str, coach_id: str) -> str:
        account = await self._call(
            "create_connected_account",
            stripe.Account.create,
            type="express",
            email=email,
            capabilities={"card_payments": {"requested": True}, "transfers": {"requested": True}},
            metadata={"coach_id": coach_id},
        )
        logger.info("Created Stripe Express account %s for coach %s", account.id, coach_id)
        return account.id

    async def create_account_link(self, *, account_id: str, refresh_url: str, return_url: str) -> str:
        link = await self._call(
            "create_account_link",
            stripe.AccountLink.create,
            account=account_id,
            refresh_url=refresh_url,
            return_url=return_url,
            type="account_onboarding",
        )
        return str(link.url)

    async def retrieve_account(self, account_id: str) -> AccountFlags:
        account = await self._call("retrieve_account", stripe.Account.retrieve, account_id)
        return AccountFlags(
            account_id=account_id,
            details_submitted=bool(getattr(account, "details_submitted", False)),
            charges_enabled=bool(getattr(account, "charges_enabled", False)),
            payouts_enabled=bool(getattr(account, "payouts_enabled", False)),
        )

    async def create_customer(self, *, email: str, name: str | None, metadata: dict[str, str]) -> str:
        customer = await self._call("create_customer", stripe.Customer.create, email=email, name=name, metadata=metadata)
        return customer.id

    async def create_checkout_session(self, params: dict[str, Any]) -> SessionRef:
        session = await self._call("create_checkout_session", stripe.checkout.Session.create, **params)
        return SessionRef(id=session.id, url=str(session.url))

    async def create_billing_portal_session(self, *, customer_id: str, return_url: str) -> str:
        portal = await self._call(
            "create_billing_portal_session",
            stripe.billing_portal.Session.create,
            customer=customer_id,
            return_url=return_url,
        )
        return str(portal.url)

    async def ensure_membership_price(self, *, product_name: str, unit_amount: int, currency: str) -> str:
        """Find or create the monthly membership price. Safe to run repeatedly."""

        found = await self._call("search_products", stripe.Product.search, query=f"name:'{product_name}'")
        if found.data:
            product = found.data[0]
            logger.info("Product already exists: %s", product.id)
        else:
            product = await self._call(
                "create_product",
                stripe.Product.create,
                name=product_name,
                description="Monthly membership for entrepreneurs: mentor matching, coaching access and investor visibility",
                metadata={"type": "entrepreneur_membership"},
            )
            logger.info("Created product: %s", product.id)

        prices = await self._call("list_prices", stripe.Price.list, product=product.id, active=True)
        for price in prices.data:
            recurring = getattr(price, "recurring", None)
            if recurring and recurring.get("interval") == "month" and price.unit_amount == unit_amount:
                logger.info("Price already exists: %s", price.id)
                return price.id

        price = await self._call(
            "create_price",
            stripe.Price.create,
            product=product.id,
            unit_amount=unit_amount,
            currency=currency,
            recurring={"interval": "month"},
            metadata={"type": "entrepreneur_monthly"},
        )
        logger.info("Created price: %s", price.id)
        return price.id
