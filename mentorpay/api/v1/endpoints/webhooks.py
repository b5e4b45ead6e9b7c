from __future__ import annotations

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from mentorpay.api.deps import get_reconciler, get_request_id
from mentorpay.database import get_db
from mentorpay.schemas.payments import WebhookAck
from mentorpay.services.webhooks import WebhookReconciler


router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post("/stripe", response_model=WebhookAck)
async def stripe_webhook_endpoint(
    request: Request,
    stripe_signature: str | None = Header(None, alias="Stripe-Signature"),
    session: AsyncSession = Depends(get_db),
    reconciler: WebhookReconciler = Depends(get_reconciler),
    request_id: str | None = Depends(get_request_id),
) -> WebhookAck:
    # Signature verification needs the raw bytes, not a parsed body.
    payload = await request.body()
    result = await reconciler.handle(session, payload=payload, signature=stripe_signature, request_id=request_id)
    return WebhookAck(event_type=result.event_type, outcome=result.outcome)
