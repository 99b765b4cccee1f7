"""Pytest fixtures for testing"""

import asyncio
import pytest
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool
from thought_gateway.api.dependencies import build_services
from thought_gateway.api.main import create_app
from thought_gateway.config import Settings
from thought_gateway.domain.models import CreditPool
from thought_gateway.infrastructure.database.repositories import BankStore, CreditLedger, EventDedupeStore
from thought_gateway.infrastructure.database.session import create_session_factory, create_tables
from tests.fakes import FakeClassificationClient, FakeGenerator


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"


@pytest.fixture
async def session_factory(database_url):
    """Fresh SQLite database per test"""
    engine = create_async_engine(database_url, poolclass=NullPool)
    await create_tables(engine)
    try:
        yield create_session_factory(engine)
    finally:
        await engine.dispose()


@pytest.fixture
def bank_store(session_factory) -> BankStore:
    return BankStore(session_factory)


@pytest.fixture
def ledger(session_factory) -> CreditLedger:
    return CreditLedger(session_factory, default_seeds={CreditPool.PRO: 5, CreditPool.CHAT: 3})


@pytest.fixture
def dedupe_store(session_factory) -> EventDedupeStore:
    return EventDedupeStore(session_factory)


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        prewarm_enabled=False,
        default_pro_balance=5,
        default_chat_balance=3,
        pro_product_grants={"smart_thoughts_10": 10},
        chat_product_grants={"chat_pack_100": 100},
    )


@pytest.fixture
def fake_generator() -> FakeGenerator:
    return FakeGenerator(single="1. I have decided the sofa belongs to me now, obviously")


@pytest.fixture
def fake_classification_client() -> FakeClassificationClient:
    return FakeClassificationClient()


@pytest.fixture
def client(
    database_url,
    test_settings,
    fake_generator,
    fake_classification_client,
) -> Generator[TestClient, None, None]:
    """Create FastAPI test client backed by a SQLite database and fake model clients"""
    engine = create_async_engine(database_url, poolclass=NullPool)
    asyncio.run(create_tables(engine))

    services = build_services(
        test_settings,
        session_factory=create_session_factory(engine),
        generation_client=fake_generator,
        classification_client=fake_classification_client,
    )
    app = create_app(services)

    with TestClient(app) as test_client:
        yield test_client

    asyncio.run(engine.dispose())
