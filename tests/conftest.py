import asyncio

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine

from mentorpay.config import Settings
from mentorpay.database import build_engine, build_session_factory
from mentorpay.main import create_app
from mentorpay.models import Base
from tests._support import WEBHOOK_SECRET, FakeGateway, RecordingNotifier


@pytest.fixture
def database_url(tmp_path):
    path = tmp_path / "mentorpay.db"
    sync_engine = create_engine(f"sqlite:///{path}")
    Base.metadata.create_all(sync_engine)
    sync_engine.dispose()
    return f"sqlite+aiosqlite:///{path}"


@pytest.fixture
def settings(database_url):
    return Settings(
        database_url=database_url,
        celery_enabled=False,
        stripe_secret_key=None,
        stripe_webhook_secret=WEBHOOK_SECRET,
        stripe_membership_price_id="price_test_membership",
        platform_fee_percent=20,
        public_base_url="https://app.example.com",
        admin_email="admin@example.com",
    )


@pytest.fixture
def session_factory(database_url):
    engine = build_engine(database_url)
    yield build_session_factory(engine)
    asyncio.run(engine.dispose())


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def client(settings, session_factory, gateway, notifier):
    app = create_app(settings=settings, session_factory=session_factory, gateway=gateway, notifier=notifier)
    with TestClient(app) as c:
        yield c
