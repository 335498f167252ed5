"""Pytest fixtures: an isolated in-memory database per test, the store on top
of it, and a FastAPI TestClient whose crypto proxy talks to a stub transport
instead of the real CoinGecko API.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator

import httpx
import pytest
from fastapi.testclient import TestClient

from app.config import Settings
from app.services.crypto_proxy import CryptoProxy
from app.services.transaction_store import TransactionStore
from db import Database
from main import create_app

UPSTREAM = "https://coingecko.test/api/v3"


@pytest.fixture
def database() -> Iterator[Database]:
    db = Database("sqlite://").open()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def store(database: Database) -> TransactionStore:
    return TransactionStore(database)


@pytest.fixture
def upstream_handler() -> dict[str, Callable[[httpx.Request], httpx.Response]]:
    """Mutable holder so a test can swap the upstream behavior."""
    return {"handler": lambda request: httpx.Response(404, json={"error": "not found"})}


@pytest.fixture
def crypto(upstream_handler) -> Iterator[CryptoProxy]:
    transport = httpx.MockTransport(lambda request: upstream_handler["handler"](request))
    proxy = CryptoProxy(base_url=UPSTREAM, timeout=15.0, client=httpx.Client(transport=transport))
    yield proxy
    proxy._client.close()


@pytest.fixture
def client(crypto: CryptoProxy) -> Iterator[TestClient]:
    settings = Settings(database_url="sqlite://", coingecko_base_url=UPSTREAM)
    app = create_app(settings, database=Database(settings.database_url), crypto=crypto)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def user_headers() -> dict[str, str]:
    return {"X-User-Id": "user-1"}
