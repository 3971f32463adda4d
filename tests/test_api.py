"""
Tests for the HTTP API.
"""

import json

import pytest
from fastapi.testclient import TestClient

from config import ALLOWED_ORIGINS
from markets.settings import MarketKind
from server import app, origin_allowed

from conftest import AK_REDLINE, FakeResponse, dmarket_objects

SEARCH = "/market/search/render/"
OVERVIEW = "/market/priceoverview/"
HISTORY = "/market/pricehistory/"
DMARKET_ITEMS = "/exchange/v1/market/items"


class TestOriginCheck:
    """Tests for the origin allow-list"""

    def test_origin_allowed(self):
        allowed = ["http://localhost:3000", "https://skins.example.com/"]

        assert origin_allowed(None, allowed)
        assert origin_allowed("http://localhost:3000", allowed)
        assert origin_allowed("https://skins.example.com", allowed)
        assert not origin_allowed("http://evil.example", allowed)
        assert origin_allowed("http://anything", ["*"])

    def test_disallowed_origin_is_rejected(self, client: TestClient):
        response = client.get("/health", headers={"Origin": "http://evil.example"})

        assert response.status_code == 403

    def test_allowed_origin(self, client: TestClient):
        response = client.get("/health", headers={"Origin": ALLOWED_ORIGINS[0]})

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == ALLOWED_ORIGINS[0]


class TestServiceEndpoints:
    """Tests for health, markets and rates"""

    def test_health(self, client: TestClient):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"ok": True}

    def test_markets(self, client: TestClient):
        markets = client.get("/api/markets").json()

        by_name = {m["market"]: m for m in markets}
        assert by_name["dmarket"]["fee_rate"] == 0.07
        assert "cs2" in by_name["steam"]["games"]

    def test_exchange_rates(self, client: TestClient):
        data = client.get("/api/exchange-rates").json()

        assert data["base"] == "USD"
        assert data["rates"]["EUR"] == 0.92

    def test_not_initialized(self):
        """Without startup wiring the marketplaces are unavailable"""
        with TestClient(app) as c:
            response = c.get("/api/markets")

        assert response.status_code == 503


class TestSearchEndpoint:
    """Tests for /search"""

    def test_search(self, client: TestClient, session, steam_search_payload):
        session.add(SEARCH, body=steam_search_payload)

        response = client.get("/search", params={"query": "redline", "game": "cs2"})

        assert response.status_code == 200
        data = response.json()
        assert data[0]["market_hash_name"] == AK_REDLINE
        assert data[0]["price"] == 12.34

    def test_search_other_market(self, client: TestClient, session):
        session.add(DMARKET_ITEMS, body=dmarket_objects((AK_REDLINE, 1500)))

        response = client.get("/search", params={"query": "redline", "game": "cs2", "market": "dmarket"})

        assert response.status_code == 200
        assert response.json()[0]["float_value"] == 0.25

    def test_missing_game(self, client: TestClient, session):
        response = client.get("/search", params={"query": "redline"})

        assert response.status_code == 400
        assert session.calls == []

    def test_unknown_game(self, client: TestClient, session):
        response = client.get("/search", params={"query": "redline", "game": "minecraft"})

        assert response.status_code == 400
        assert session.calls == []

    def test_unknown_market(self, client: TestClient):
        response = client.get("/search", params={"game": "cs2", "market": "bitskins"})

        assert response.status_code == 400

    def test_unconfigured_market(self, client: TestClient, registry):
        del registry.marketplaces[MarketKind.SKINPORT]

        response = client.get("/search", params={"game": "cs2", "market": "skinport"})

        assert response.status_code == 500

    def test_upstream_failure(self, client: TestClient, session):
        session.add(SEARCH, status=503, body=b"")

        response = client.get("/search", params={"game": "cs2"})

        assert response.status_code == 500


class TestPriceEndpoints:
    """Tests for /price, /current_price and /price_history"""

    def test_price(self, client: TestClient, session):
        session.add(OVERVIEW, body={"success": True, "lowest_price": "$12.34"})

        response = client.get("/price", params={"item_name": AK_REDLINE, "game": "cs2"})

        assert response.status_code == 200
        assert response.json() == {"price": 12.34, "currency": "USD"}

    def test_current_price_alias(self, client: TestClient, session):
        session.add(OVERVIEW, body={"success": True, "lowest_price": "11,35€"})

        response = client.get("/current_price", params={"item_name": AK_REDLINE, "game": "cs2", "currency": "EUR"})

        assert response.json() == {"price": 11.35, "currency": "EUR"}

    def test_price_unavailable(self, client: TestClient, session):
        session.add(OVERVIEW, body={"success": True})

        response = client.get("/price", params={"item_name": AK_REDLINE, "game": "cs2"})

        assert response.status_code == 404

    def test_price_rate_limited(self, client: TestClient, session, controller):
        """A persistent 429 is retried, then surfaces as 429"""
        session.add(OVERVIEW, status=429, body=b"")

        response = client.get("/price", params={"item_name": AK_REDLINE, "game": "cs2"})

        assert response.status_code == 429
        assert len(session.calls_to(OVERVIEW)) == controller.max_retries + 1

    def test_price_missing_item(self, client: TestClient):
        response = client.get("/price", params={"game": "cs2"})

        assert response.status_code == 400

    def test_price_unknown_currency(self, client: TestClient, session):
        response = client.get("/price", params={"item_name": AK_REDLINE, "game": "cs2", "currency": "XYZ"})

        assert response.status_code == 400
        assert session.calls == []

    def test_price_history_with_bom(self, client: TestClient, session):
        body = ("\ufeff" + json.dumps({"success": True, "prices": False})).encode("utf-8")
        session.add(HISTORY, body=body)

        response = client.get("/price_history", params={"item_name": AK_REDLINE, "game": "cs2"})

        assert response.status_code == 200
        assert response.json() == {"success": True, "prices": []}

    def test_price_history_rejected(self, client: TestClient, session):
        session.add(HISTORY, status=400, body=b"")

        response = client.get("/price_history", params={"item_name": AK_REDLINE, "game": "cs2"})

        assert response.status_code == 400

    def test_price_history_malformed(self, client: TestClient, session):
        session.add(HISTORY, body=b"<html></html>")

        response = client.get("/price_history", params={"item_name": AK_REDLINE, "game": "cs2"})

        assert response.status_code == 500

    def test_price_history_not_offered(self, client: TestClient):
        response = client.get(
            "/price_history",
            params={"item_name": AK_REDLINE, "game": "cs2", "market": "dmarket"},
        )

        assert response.status_code == 400


class TestArbitrageEndpoint:
    """Tests for /api/arbitrage-opportunities"""

    @pytest.fixture
    def upstream(self, session, steam_search_payload):
        session.add(SEARCH, body=steam_search_payload)

        def handler(params):
            if params.get("title") == AK_REDLINE:
                return FakeResponse(200, dmarket_objects((AK_REDLINE, 1500)))
            return FakeResponse(200, {"objects": []})

        session.add_handler(DMARKET_ITEMS, handler)
        return session

    def test_opportunities(self, client: TestClient, upstream):
        response = client.get(
            "/api/arbitrage-opportunities",
            params={"source": "steam", "destination": "dmarket", "gameId": "cs2"},
        )

        assert response.status_code == 200
        data = response.json()
        assert len(data) == 1
        assert data[0]["item_name"] == AK_REDLINE
        assert data[0]["source_price"] == 12.34
        assert data[0]["dest_price"] == 15.0
        assert data[0]["fee"] == 1.05
        assert data[0]["net_spread"] == 1.61

    def test_only_profitable_and_sort(self, client: TestClient, upstream):
        response = client.get(
            "/api/arbitrage-opportunities",
            params={
                "source": "steam",
                "destination": "dmarket",
                "gameId": "cs2",
                "onlyProfitable": "true",
                "sort": "spread",
            },
        )

        assert response.status_code == 200
        assert [o["item_name"] for o in response.json()] == [AK_REDLINE]

    @pytest.mark.parametrize("params", [
        {"destination": "dmarket", "gameId": "cs2"},
        {"source": "steam", "gameId": "cs2"},
        {"source": "steam", "destination": "dmarket"},
        {"source": "steam", "destination": "dmarket", "gameId": "cs2", "limit": 0},
        {"source": "steam", "destination": "nowhere", "gameId": "cs2"},
    ])
    def test_invalid_requests(self, client: TestClient, session, params):
        response = client.get("/api/arbitrage-opportunities", params=params)

        assert response.status_code == 400
        assert session.calls == []

    def test_source_failure(self, client: TestClient, session):
        session.add(SEARCH, status=500, body=b"")

        response = client.get(
            "/api/arbitrage-opportunities",
            params={"source": "steam", "destination": "dmarket", "gameId": "cs2"},
        )

        assert response.status_code == 500

    def test_source_rate_limited(self, client: TestClient, session):
        session.add(SEARCH, status=429, body=b"")

        response = client.get(
            "/api/arbitrage-opportunities",
            params={"source": "steam", "destination": "dmarket", "gameId": "cs2"},
        )

        assert response.status_code == 429

    def test_state_after_scan(self, client: TestClient, upstream):
        client.get(
            "/api/arbitrage-opportunities",
            params={"source": "steam", "destination": "dmarket", "gameId": "cs2"},
        )

        state = client.get("/api/state").json()

        assert state["history"][0]["item_name"] == AK_REDLINE

    def test_csv_export(self, client: TestClient, upstream):
        client.get(
            "/api/arbitrage-opportunities",
            params={"source": "steam", "destination": "dmarket", "gameId": "cs2"},
        )

        response = client.get("/api/export/opportunities/csv")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        lines = response.text.strip().splitlines()
        assert lines[0].startswith("timestamp,item_name")
        assert len(lines) == 2
        assert AK_REDLINE in lines[1]

    def test_csv_export_filters(self, client: TestClient, upstream):
        client.get(
            "/api/arbitrage-opportunities",
            params={"source": "steam", "destination": "dmarket", "gameId": "cs2"},
        )

        by_spread = client.get("/api/export/opportunities/csv", params={"min_spread": 5})
        by_market = client.get("/api/export/opportunities/csv", params={"market": "skinport"})

        assert len(by_spread.text.strip().splitlines()) == 1
        assert len(by_market.text.strip().splitlines()) == 1
