from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

import httpx
import pytest_asyncio
from fastapi import FastAPI

from resource_metrics.config import Settings
from resource_metrics.main import create_app
from resource_metrics.models import Base


@pytest_asyncio.fixture
async def app_factory(tmp_path):
    engines = []

    async def _build(**overrides: object) -> FastAPI:
        database_path = tmp_path / f"metrics-{len(engines)}.db"
        settings = Settings(database_url=f"sqlite+aiosqlite:///{database_path}", **overrides)
        application = create_app(settings)
        async with application.state.engine.begin() as connection:
            await connection.run_sync(Base.metadata.create_all)
        engines.append(application.state.engine)
        return application

    yield _build
    for engine in engines:
        await engine.dispose()


@pytest_asyncio.fixture
async def client_factory(app_factory):
    clients: list[httpx.AsyncClient] = []

    async def _build(**overrides: object) -> httpx.AsyncClient:
        application = await app_factory(**overrides)
        test_client = httpx.AsyncClient(
            transport=httpx.ASGITransport(app=application),
            base_url="http://testserver",
        )
        clients.append(test_client)
        return test_client

    yield _build
    for test_client in clients:
        await test_client.aclose()


@pytest_asyncio.fixture
async def client(client_factory) -> httpx.AsyncClient:
    return await client_factory()
