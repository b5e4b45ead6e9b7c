from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from mentorpay.api.deps import get_request_id, get_state_machine, parse_uuid
from mentorpay.crud.application import get_application, list_applications, set_disabled, submit_application
from mentorpay.database import get_db
from mentorpay.models.enums import ApplicantKind, ApplicationStatus, PaymentStatus
from mentorpay.schemas.application import (
    ApplicationListResponse,
    ApplicationRead,
    ApplicationSubmit,
    DashboardAccessRead,
    DisabledUpdate,
    StatusUpdate,
    TransitionResponse,
)
from mentorpay.services.state_machine import ApplicationStateMachine, dashboard_access


router = APIRouter(prefix="/applications", tags=["applications"])


@router.post("/{kind}", response_model=ApplicationRead)
async def submit_application_endpoint(
    kind: ApplicantKind,
    payload: ApplicationSubmit,
    response: Response,
    session: AsyncSession = Depends(get_db),
) -> ApplicationRead:
    """Submit an application, or merge a resubmission from the same email."""

    app, created = await submit_application(
        session,
        kind=kind,
        email=payload.email,
        full_name=payload.full_name,
        form_data=payload.form_data,
    )
    response.status_code = 201 if created else 200
    return ApplicationRead.model_validate(app)


@router.get("", response_model=ApplicationListResponse)
async def list_applications_endpoint(
    kind: ApplicantKind | None = Query(None),
    status: str | None = Query(None, description="Application status"),
    payment_status: str | None = Query(None, description="Entrepreneur payment status"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    session: AsyncSession = Depends(get_db),
) -> ApplicationListResponse:
    if status is not None and status not in {s.value for s in ApplicationStatus}:
        raise HTTPException(status_code=422, detail="Invalid status")

    if payment_status is not None and payment_status not in {s.value for s in PaymentStatus}:
        raise HTTPException(status_code=422, detail="Invalid payment_status")

    items, total = await list_applications(
        session,
        kind=kind,
        status=status,
        payment_status=payment_status,
        limit=limit,
        offset=offset,
    )
    return ApplicationListResponse(
        items=[ApplicationRead.model_validate(i) for i in items],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/{application_id}", response_model=ApplicationRead)
async def get_application_endpoint(
    application_id: str,
    session: AsyncSession = Depends(get_db),
) -> ApplicationRead:
    app_id = parse_uuid(application_id, detail="Application not found")
    app = await get_application(session, application_id=app_id)
    if app is None:
        raise HTTPException(status_code=404, detail="Application not found")
    return ApplicationRead.model_validate(app)


@router.patch("/{application_id}/status", response_model=TransitionResponse)
async def transition_application_endpoint(
    application_id: str,
    payload: StatusUpdate,
    session: AsyncSession = Depends(get_db),
    machine: ApplicationStateMachine = Depends(get_state_machine),
    request_id: str | None = Depends(get_request_id),
) -> TransitionResponse:
    app_id = parse_uuid(application_id, detail="Application not found")
    app, previous = await machine.transition(
        session,
        application_id=app_id,
        new_status=payload.status,
        request_id=request_id,
    )
    return TransitionResponse(application=ApplicationRead.model_validate(app), previous_status=previous)


@router.patch("/{application_id}/disabled", response_model=ApplicationRead)
async def set_disabled_endpoint(
    application_id: str,
    payload: DisabledUpdate,
    session: AsyncSession = Depends(get_db),
) -> ApplicationRead:
    app_id = parse_uuid(application_id, detail="Application not found")
    app = await get_application(session, application_id=app_id)
    if app is None:
        raise HTTPException(status_code=404, detail="Application not found")

    updated = await set_disabled(session, app=app, is_disabled=payload.is_disabled)
    return ApplicationRead.model_validate(updated)


@router.get("/{application_id}/dashboard-access", response_model=DashboardAccessRead)
async def dashboard_access_endpoint(
    application_id: str,
    session: AsyncSession = Depends(get_db),
) -> DashboardAccessRead:
    app_id = parse_uuid(application_id, detail="Application not found")
    app = await get_application(session, application_id=app_id)
    if app is None:
        raise HTTPException(status_code=404, detail="Application not found")

    return DashboardAccessRead(
        application_id=app.id,
        kind=app.kind,
        status=app.status,
        payment_status=app.payment_status,
        access=dashboard_access(app),
    )
