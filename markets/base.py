"""Base marketplace adapter"""
import asyncio
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional
from urllib.parse import urlencode

import aiohttp
from yarl import URL

from config import REQUEST_TIMEOUT

from .errors import (
    InvalidRequest,
    ParseFailure,
    UpstreamMalformedResponse,
    UpstreamRateLimited,
    UpstreamRejected,
    UpstreamUnavailable,
)
from .pricing import Currency, RawPrice, normalize_price, to_major
from .settings import MarketKind, MarketplaceConfig

logger = logging.getLogger(__name__)

BOM = "\ufeff"


def normalize_game(game: Optional[str]) -> str:
    """'Dota 2' / 'dota2' / 'CS2' -> table key"""
    return "".join((game or "").lower().split())


@dataclass(frozen=True)
class Listing:
    """Item offered on a source marketplace"""
    name: str
    market_key: str  # canonical item identifier (market hash name)
    icon_ref: Optional[str]
    price_minor: int = 0  # 0 when the listing carries no price
    currency: Currency = Currency.USD
    float_value: Optional[Decimal] = None
    stickers: tuple[str, ...] = ()
    marketplace: str = ""

    def to_dict(self) -> dict:
        result = {
            "name": self.name,
            "market_hash_name": self.market_key,
            "icon_url": self.icon_ref,
            "price": to_major(self.price_minor) if self.price_minor else None,
            "currency": self.currency.value,
        }
        if self.float_value is not None:
            result["float_value"] = float(self.float_value)
        if self.stickers:
            result["stickers"] = list(self.stickers)
        return result


@dataclass(frozen=True)
class PriceQuote:
    """Price of one item on one marketplace; price_minor == 0 means unavailable"""
    market_key: str
    price_minor: int
    currency: Currency
    observed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    marketplace: str = ""

    @property
    def available(self) -> bool:
        return self.price_minor > 0

    @classmethod
    def unavailable(cls, market_key: str, currency: Currency, marketplace: str = "") -> "PriceQuote":
        return cls(market_key=market_key, price_minor=0, currency=currency, marketplace=marketplace)


@dataclass(frozen=True)
class PriceHistory:
    """Upstream price series, passed through as returned"""
    success: bool
    prices: list = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"success": self.success, "prices": self.prices}


class BaseMarketplace(ABC):
    """
    Base class for marketplace adapters.

    Subclasses describe endpoints and response shapes; this class owns
    dispatch, authentication hooks, status mapping and body decoding.
    """

    def __init__(self, config: MarketplaceConfig, session: aiohttp.ClientSession):
        self.config = config
        self.session = session
        self.timeout = aiohttp.ClientTimeout(total=REQUEST_TIMEOUT)

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def kind(self) -> MarketKind:
        return self.config.kind

    @property
    def fee_rate(self) -> float:
        return self.config.fee_rate

    @property
    def max_page_size(self) -> int:
        return self.config.max_page_size

    def game_id(self, game: Optional[str]) -> str:
        """Upstream identifier for a game, InvalidRequest when unsupported"""
        if not game:
            raise InvalidRequest("Missing game", marketplace=self.name)
        key = normalize_game(game)
        if key in self.config.game_ids:
            return self.config.game_ids[key]
        # Accept raw upstream ids too ("730")
        if str(game) in self.config.game_ids.values():
            return str(game)
        raise InvalidRequest(f"Unknown game '{game}'", marketplace=self.name)

    def cap_limit(self, limit: int) -> int:
        """Clamp a requested page size into the upstream's accepted range"""
        return max(1, min(int(limit), self.max_page_size))

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    @abstractmethod
    async def search(self, query: str, game: str, limit: int) -> list[Listing]:
        """Listings matching a query"""
        pass

    @abstractmethod
    async def price_lookup(self, market_key: str, game: str, currency: Currency) -> PriceQuote:
        """Current price of one item"""
        pass

    async def price_history(self, market_key: str, game: str, currency: Currency) -> PriceHistory:
        raise InvalidRequest(f"{self.name} does not provide price history", marketplace=self.name)

    # True when one upstream response prices the whole catalog, so a batch
    # of lookups is answered by a single price_table call
    catalog_pricing = False

    async def price_table(self, game: str, currency: Currency) -> dict[str, PriceQuote]:
        """Quotes for every item in one response, keyed by market key"""
        raise InvalidRequest(f"{self.name} does not price its whole catalog at once", marketplace=self.name)

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _default_headers(self) -> dict[str, str]:
        return {"Accept": "application/json"}

    def _auth_headers(self, method: str, path: str, query: str, body: str) -> dict[str, str]:
        """Authentication headers for one call - marketplace specific"""
        return {}

    async def _get_json(self, path: str, params: Optional[dict], operation: str) -> Any:
        """GET ``path`` and decode the JSON body, mapping failures to MarketError"""
        query = urlencode(params or {})
        url = f"{self.config.base_url}{path}"
        if query:
            url = f"{url}?{query}"
        # Already encoded: the query on the wire must be the one that was signed
        target = URL(url, encoded=True)

        headers = self._default_headers()
        headers.update(self._auth_headers("GET", path, query, ""))

        try:
            async with self.session.get(target, headers=headers, timeout=self.timeout) as resp:
                status = resp.status
                raw = await resp.read()
        except asyncio.TimeoutError as e:
            logger.error(f"[{self.name}] {operation} timed out ({path})")
            raise UpstreamUnavailable("Request timed out", self.name, operation) from e
        except aiohttp.ClientError as e:
            logger.error(f"[{self.name}] {operation} transport error ({path}): {type(e).__name__}")
            raise UpstreamUnavailable(f"Transport error: {type(e).__name__}", self.name, operation) from e

        if status == 429:
            logger.warning(f"[{self.name}] {operation} rate limited ({path})")
            raise UpstreamRateLimited("Rate limited", self.name, operation, status)
        if not 200 <= status < 300:
            logger.error(f"[{self.name}] {operation} rejected ({path}) status={status}")
            raise UpstreamRejected("Request rejected", self.name, operation, status)

        return self._decode(raw, operation, status)

    def _decode(self, raw: bytes, operation: str, status: int) -> Any:
        """Decode a body that may carry a byte-order mark"""
        try:
            text = raw.decode("utf-8-sig") if isinstance(raw, bytes) else str(raw)
            return json.loads(text.lstrip(BOM))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.error(f"[{self.name}] {operation} returned unparsable body: {e}")
            raise UpstreamMalformedResponse("Unparsable response body", self.name, operation, status) from e

    def _expect(self, condition: bool, operation: str, what: str):
        if not condition:
            logger.error(f"[{self.name}] {operation} unexpected response shape: {what}")
            raise UpstreamMalformedResponse(f"Unexpected response shape: {what}", self.name, operation)

    def _normalize(self, raw: RawPrice, operation: str, locale_hint: Optional[str] = None) -> int:
        try:
            return normalize_price(raw, locale_hint)
        except ParseFailure as e:
            logger.error(f"[{self.name}] {operation} bad price {raw!r}: {e}")
            raise UpstreamMalformedResponse(f"Bad price value {raw!r}", self.name, operation) from e

    def _quote(self, market_key: str, raw: RawPrice, currency: Currency, operation: str) -> PriceQuote:
        """Quote from a raw price; a missing price is the zero sentinel"""
        if raw is None or raw == "":
            logger.debug(f"[{self.name}] No price for {market_key}")
            return PriceQuote.unavailable(market_key, currency, self.name)
        return PriceQuote(
            market_key=market_key,
            price_minor=self._normalize(raw, operation),
            currency=currency,
            marketplace=self.name,
        )
