"""
Pytest configuration and fixtures for the arbitrage service tests.

Upstream marketplaces are replaced by ``FakeSession``, which answers the
``session.get(...)`` calls the adapters make with canned responses keyed by
URL path.
"""

import asyncio
import json
import sys
from collections import defaultdict
from dataclasses import replace
from typing import Callable, Generator, Optional, Union

import pytest
from fastapi.testclient import TestClient
from yarl import URL

sys.path.insert(0, '.')

from engine import ArbitrageEngine
from markets.pacing import PacingController
from markets.registry import MarketRegistry, build_marketplaces
from markets.settings import CONFIG_BUILDERS
from server import app
from src.api.dependencies import get_engine, get_registry
from src.investments.service import InvestmentService

TEST_ENV = {
    "DMARKET_PUBLIC_KEY": "test-public-key",
    "DMARKET_SECRET_KEY": "test-secret-key",
    "SKINPORT_CLIENT_ID": "test-client-id",
    "SKINPORT_CLIENT_SECRET": "test-client-secret",
}


class FakeResponse:
    """Just enough of aiohttp.ClientResponse for the adapters"""

    def __init__(
        self,
        status: int = 200,
        body: Union[bytes, str, dict, list, None] = None,
        delay: float = 0.0,
        on_read: Optional[Callable[[], None]] = None,
    ):
        if isinstance(body, (dict, list)):
            body = json.dumps(body)
        if isinstance(body, str):
            body = body.encode("utf-8")
        self.status = status
        self._body = body or b""
        self.delay = delay
        self.on_read = on_read

    async def read(self) -> bytes:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.on_read:
            self.on_read()
        return self._body

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class FakeSession:
    """
    Stand-in for aiohttp.ClientSession.

    Each path holds a queue of responses; the last one repeats. A route may
    also be a callable receiving the query params, or an exception to raise.
    """

    def __init__(self):
        self.routes: dict[str, list] = defaultdict(list)
        self.calls: list[dict] = []
        self.closed = False

    def add(self, path: str, status: int = 200, body=None):
        self.routes[path].append(FakeResponse(status, body))

    def add_handler(self, path: str, handler: Callable[[dict], FakeResponse]):
        self.routes[path].append(handler)

    def add_error(self, path: str, error: Exception):
        self.routes[path].append(error)

    def calls_to(self, path: str) -> list[dict]:
        return [c for c in self.calls if c["path"] == path]

    def get(self, url, headers=None, timeout=None, **kwargs):
        # aiohttp requotes plain strings through yarl; URL objects go out as built
        target = url if isinstance(url, URL) else URL(url)
        params = dict(target.query)
        self.calls.append({
            "target": target,
            "url": str(target),
            "path": target.path,
            "query": target.raw_query_string,
            "params": params,
            "headers": dict(headers or {}),
        })

        queue = self.routes.get(target.path)
        if not queue:
            return FakeResponse(404, {"error": "no route"})
        item = queue.pop(0) if len(queue) > 1 else queue[0]

        if isinstance(item, Exception):
            raise item
        if callable(item) and not isinstance(item, FakeResponse):
            return item(params)
        return item

    async def close(self):
        self.closed = True


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def configs():
    """Every marketplace configured, with no pacing delay"""
    return {
        kind: replace(builder(TEST_ENV), min_spacing=0.0)
        for kind, builder in CONFIG_BUILDERS.items()
    }


@pytest.fixture
def controller() -> PacingController:
    return PacingController(min_spacing=0.0, max_retries=3, backoff_base=0.0)


@pytest.fixture
def registry(configs, session, controller) -> MarketRegistry:
    return MarketRegistry(build_marketplaces(configs, session), controller)


@pytest.fixture
def engine(registry) -> ArbitrageEngine:
    return ArbitrageEngine(registry)


@pytest.fixture
def client(registry, engine) -> Generator[TestClient, None, None]:
    """Test client wired to the fake marketplaces"""
    app.dependency_overrides[get_registry] = lambda: registry
    app.dependency_overrides[get_engine] = lambda: engine
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def fresh_investment_service() -> InvestmentService:
    """Create a fresh investment service for isolated tests"""
    return InvestmentService()


# Sample upstream payloads

AK_REDLINE = "AK-47 | Redline (Field-Tested)"
AWP_ASIIMOV = "AWP | Asiimov (Field-Tested)"


@pytest.fixture
def steam_search_payload():
    """Steam /market/search/render JSON page"""
    return {
        "success": True,
        "start": 0,
        "pagesize": 2,
        "total_count": 2,
        "results": [
            {
                "name": AK_REDLINE,
                "hash_name": AK_REDLINE,
                "sell_listings": 812,
                "sell_price": 1234,
                "sell_price_text": "$12.34",
                "asset_description": {
                    "appid": 730,
                    "icon_url": "ak-icon-ref",
                    "market_hash_name": AK_REDLINE,
                },
            },
            {
                "name": AWP_ASIIMOV,
                "hash_name": AWP_ASIIMOV,
                "sell_listings": 140,
                "sell_price": 5000,
                "sell_price_text": "$50.00",
                "asset_description": {
                    "appid": 730,
                    "icon_url": "awp-icon-ref",
                    "market_hash_name": AWP_ASIIMOV,
                },
            },
        ],
    }


def dmarket_objects(*offers) -> dict:
    """DMarket /exchange/v1/market/items body from (title, cents) pairs"""
    return {
        "objects": [
            {
                "itemId": f"id-{i}",
                "title": title,
                "image": f"https://img.dmarket.com/{i}.png",
                "price": {"USD": str(cents)},
                "extra": {"floatValue": 0.25, "stickers": [{"name": "Sticker | Crown (Foil)"}]},
            }
            for i, (title, cents) in enumerate(offers)
        ],
        "cursor": "",
    }
