"""HTTP API for the skin market arbitrage service"""
import logging
from typing import Optional, Sequence

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import ALLOWED_ORIGINS, DEFAULT_CURRENCY
from engine import ArbitrageEngine
from markets.errors import (
    InvalidRequest,
    MarketError,
    UpstreamRateLimited,
    UpstreamRejected,
)
from markets.pricing import resolve_currency, to_major
from markets.registry import MarketRegistry
from src.api.dependencies import get_engine, get_registry
from src.api.export import router as export_router
from src.investments.routes import router as investments_router
from src.rates import rates_table

logger = logging.getLogger(__name__)

app = FastAPI(title="Skin Market Arbitrage", version="1.0.0")


def origin_allowed(origin: Optional[str], allowed: Sequence[str]) -> bool:
    """True when a request's declared Origin is on the allow-list.

    Requests without an Origin header (server-to-server, curl) pass.
    """
    if not origin:
        return True
    if "*" in allowed:
        return True
    return origin.rstrip("/") in {a.rstrip("/") for a in allowed}


@app.middleware("http")
async def enforce_origin(request: Request, call_next):
    origin = request.headers.get("origin")
    if not origin_allowed(origin, ALLOWED_ORIGINS):
        logger.warning(f"Rejected request from origin {origin} to {request.url.path}")
        return JSONResponse({"detail": "Origin not allowed"}, status_code=status.HTTP_403_FORBIDDEN)
    return await call_next(request)


app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(investments_router)
app.include_router(export_router)


def http_error(exc: MarketError, rejected_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> HTTPException:
    """Translate a marketplace failure into the HTTP status the caller sees"""
    if isinstance(exc, InvalidRequest):
        code = status.HTTP_400_BAD_REQUEST
    elif isinstance(exc, UpstreamRateLimited):
        code = status.HTTP_429_TOO_MANY_REQUESTS
    elif isinstance(exc, UpstreamRejected):
        code = rejected_status
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=code, detail=str(exc))


def _require(value: Optional[str], name: str) -> str:
    if value is None or not str(value).strip():
        raise InvalidRequest(f"Missing parameter '{name}'")
    return str(value).strip()


def _limit(value: Optional[int]) -> int:
    if value is None or value < 1:
        raise InvalidRequest(f"Invalid limit '{value}'")
    return value


@app.get("/health")
async def health():
    return {"ok": True}


@app.get("/api/markets")
async def list_markets(registry: MarketRegistry = Depends(get_registry)):
    """Configured marketplaces with fee rates and supported games"""
    return registry.to_list()


@app.get("/api/exchange-rates")
async def exchange_rates():
    return rates_table()


@app.get("/api/state")
async def get_state(engine: ArbitrageEngine = Depends(get_engine)):
    return engine.get_state()


@app.get("/search")
async def search(
    query: str = "",
    game: Optional[str] = None,
    market: str = "steam",
    limit: int = 20,
    registry: MarketRegistry = Depends(get_registry),
):
    """Listings matching a query on one marketplace (Steam by default)"""
    try:
        game = _require(game, "game")
        limit = _limit(limit)
        adapter = registry.get(market)
        adapter.game_id(game)
        listings = await registry.controller.call(adapter, lambda: adapter.search(query, game, limit))
    except MarketError as e:
        raise http_error(e)
    return [listing.to_dict() for listing in listings]


@app.get("/price")
@app.get("/current_price")
async def current_price(
    item_name: Optional[str] = None,
    game: Optional[str] = None,
    market: str = "steam",
    currency: str = DEFAULT_CURRENCY,
    registry: MarketRegistry = Depends(get_registry),
):
    """Current price of one item in major units; 404 when the marketplace has none"""
    try:
        item_name = _require(item_name, "item_name")
        game = _require(game, "game")
        quote_currency = resolve_currency(currency)
        adapter = registry.get(market)
        adapter.game_id(game)
        quote = await registry.controller.call(
            adapter, lambda: adapter.price_lookup(item_name, game, quote_currency)
        )
    except MarketError as e:
        raise http_error(e)

    if not quote.available:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No price available for '{item_name}'",
        )
    return {"price": to_major(quote.price_minor), "currency": quote.currency.value}


@app.get("/price_history")
async def price_history(
    item_name: Optional[str] = None,
    game: Optional[str] = None,
    market: str = "steam",
    currency: str = DEFAULT_CURRENCY,
    registry: MarketRegistry = Depends(get_registry),
):
    """Upstream price series as ``{success, prices: [[label, price, volume], ...]}``"""
    try:
        item_name = _require(item_name, "item_name")
        game = _require(game, "game")
        history_currency = resolve_currency(currency)
        adapter = registry.get(market)
        adapter.game_id(game)
        history = await registry.controller.call(
            adapter, lambda: adapter.price_history(item_name, game, history_currency)
        )
    except MarketError as e:
        raise http_error(e, rejected_status=status.HTTP_400_BAD_REQUEST)
    return history.to_dict()


@app.get("/api/arbitrage-opportunities")
async def arbitrage_opportunities(
    source: Optional[str] = None,
    destination: Optional[str] = None,
    gameId: Optional[str] = None,
    limit: int = 20,
    currency: str = DEFAULT_CURRENCY,
    query: str = "",
    onlyProfitable: bool = False,
    sort: Optional[str] = None,
    engine: ArbitrageEngine = Depends(get_engine),
):
    """
    Buy-on-source / sell-on-destination opportunities, in major units.

    Unpriced items are left out; an empty array means nothing matched.
    ``sort=spread`` orders by net spread, otherwise source order is kept.
    """
    try:
        opportunities = await engine.find_opportunities(
            source=_require(source, "source"),
            destination=_require(destination, "destination"),
            game=_require(gameId, "gameId"),
            limit=_limit(limit),
            currency=resolve_currency(currency),
            query=query,
            only_profitable=onlyProfitable,
            sort_by_spread=(sort or "").lower() == "spread",
        )
    except MarketError as e:
        raise http_error(e)
    return [o.to_dict() for o in opportunities]
