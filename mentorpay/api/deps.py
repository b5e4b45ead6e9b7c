from __future__ import annotations

import uuid

from fastapi import Depends, HTTPException, Request

from mentorpay.config import Settings
from mentorpay.services.checkout import CheckoutOrchestrator
from mentorpay.services.connected_accounts import ConnectedAccountManager
from mentorpay.services.ledger import RevenueLedger
from mentorpay.services.notifications import EmailNotifier
from mentorpay.services.payment_gateway import PaymentGateway
from mentorpay.services.state_machine import ApplicationStateMachine
from mentorpay.services.webhooks import WebhookReconciler


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_gateway(request: Request) -> PaymentGateway:
    return request.app.state.gateway


def get_notifier(request: Request) -> EmailNotifier:
    return request.app.state.notifier


def get_request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def get_state_machine(
    settings: Settings = Depends(get_settings),
    notifier: EmailNotifier = Depends(get_notifier),
) -> ApplicationStateMachine:
    return ApplicationStateMachine(settings=settings, notifier=notifier)


def get_account_manager(
    settings: Settings = Depends(get_settings),
    gateway: PaymentGateway = Depends(get_gateway),
) -> ConnectedAccountManager:
    return ConnectedAccountManager(settings=settings, gateway=gateway)


def get_checkout(
    settings: Settings = Depends(get_settings),
    gateway: PaymentGateway = Depends(get_gateway),
) -> CheckoutOrchestrator:
    return CheckoutOrchestrator(settings=settings, gateway=gateway)


def get_reconciler(
    settings: Settings = Depends(get_settings),
    notifier: EmailNotifier = Depends(get_notifier),
) -> WebhookReconciler:
    return WebhookReconciler(settings=settings, notifier=notifier)


def get_ledger() -> RevenueLedger:
    return RevenueLedger()


def parse_uuid(value: str, *, detail: str) -> uuid.UUID:
    try:
        # Keep it explicit to get a clean 404 for malformed UUIDs.
        return uuid.UUID(value)
    except ValueError:
        raise HTTPException(status_code=404, detail=detail)
