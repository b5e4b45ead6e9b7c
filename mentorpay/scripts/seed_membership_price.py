"""Create (or find) the monthly membership price on Stripe.

Run once per Stripe account, then put the printed id into
STRIPE_MEMBERSHIP_PRICE_ID:

    python -m mentorpay.scripts.seed_membership_price
"""

from __future__ import annotations

import asyncio
import logging

from mentorpay.config import Settings
from mentorpay.services.payment_gateway import StripeGateway


PRODUCT_NAME = "Entrepreneur Membership"


async def seed_membership_price(settings: Settings) -> str:
    gateway = StripeGateway.from_settings(settings)
    return await gateway.ensure_membership_price(
        product_name=PRODUCT_NAME,
        unit_amount=settings.membership_price_cents,
        currency=settings.currency,
    )


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s %(message)s")
    settings = Settings()
    price_id = asyncio.run(seed_membership_price(settings))
    print(f"STRIPE_MEMBERSHIP_PRICE_ID={price_id}")


if __name__ == "__main__":
    main()
