from fastapi import APIRouter

from mentorpay.api.v1.endpoints.applications import router as applications_router
from mentorpay.api.v1.endpoints.checkout import router as checkout_router
from mentorpay.api.v1.endpoints.coaches import router as coaches_router
from mentorpay.api.v1.endpoints.ledger import router as ledger_router
from mentorpay.api.v1.endpoints.webhooks import router as webhooks_router

router = APIRouter()


@router.get("/ping")
async def ping():
    return {"ping": "pong"}


router.include_router(applications_router)
router.include_router(coaches_router)
router.include_router(checkout_router)
router.include_router(webhooks_router)
router.include_router(ledger_router)
