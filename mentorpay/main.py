import logging
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mentorpay.api.errors import register_exception_handlers
from mentorpay.api.v1.router import router as v1_router
from mentorpay.config import Settings
from mentorpay.database import build_engine, build_session_factory
from mentorpay.services.notifications import EmailNotifier
from mentorpay.services.payment_gateway import PaymentGateway, StripeGateway

logger = logging.getLogger("mentorpay.api")


def create_app(
    *,
    settings: Settings | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    gateway: PaymentGateway | None = None,
    notifier: EmailNotifier | None = None,
) -> FastAPI:
    """Build the API with its collaborators attached to `app.state`.

    Anything not passed in is built from settings. An engine created here is
    owned by the app and disposed on shutdown.
    """

    settings = settings or Settings()
    engine = None
    if session_factory is None:
        engine = build_engine(settings.database_url)
        session_factory = build_session_factory(engine)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if engine is not None:
            await engine.dispose()

    app = FastAPI(title="Mentorpay Entitlement & Payments API", lifespan=lifespan)
    app.state.settings = settings
    app.state.session_factory = session_factory
    app.state.gateway = gateway or StripeGateway.from_settings(settings)
    app.state.notifier = notifier or EmailNotifier(settings)

    if settings.cors_origin_list:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origin_list,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        """Attach a request id to every response and log a compact access line.

        - If the caller provides X-Request-ID, we reuse it.
        - Otherwise we generate a UUID4.
        """

        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id

        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000

        response.headers["X-Request-ID"] = request_id
        logger.info(
            "access request_id=%s method=%s path=%s status=%s duration_ms=%.2f",
            request_id,
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
        )
        return response

    register_exception_handlers(app)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    app.include_router(v1_router, prefix="/api/v1")
    return app


def main() -> None:
    import uvicorn

    settings = Settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    uvicorn.run("mentorpay.main:create_app", factory=True, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
