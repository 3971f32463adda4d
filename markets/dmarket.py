"""DMarket adapter (signature-authenticated)"""
import logging
import time
from decimal import Decimal, InvalidOperation
from typing import Callable, Optional

import aiohttp

from .base import BaseMarketplace, Listing, PriceQuote
from .errors import UpstreamMalformedResponse
from .pricing import Currency
from .settings import MarketplaceConfig
from .signer import signed_headers

logger = logging.getLogger(__name__)

ITEMS_PATH = "/exchange/v1/market/items"

# Offers fetched when looking up the cheapest price of one title
LOOKUP_PAGE_SIZE = 20


class DMarketMarketplace(BaseMarketplace):
    """
    DMarket market API.

    Every request carries X-Api-Key / X-Request-Sign / X-Sign-Date built by
    the signer. Page size is capped upstream at 100; larger requested limits
    are clamped rather than rejected. Prices are USD cents as strings.
    """

    def __init__(
        self,
        config: MarketplaceConfig,
        session: aiohttp.ClientSession,
        clock: Callable[[], float] = time.time,
    ):
        super().__init__(config, session)
        self._clock = clock

    def _auth_headers(self, method: str, path: str, query: str, body: str) -> dict[str, str]:
        return signed_headers(
            public_key=self.config.api_key or "",
            secret_key=self.config.api_secret or "",
            method=method,
            path=path,
            query=query,
            body=body,
            timestamp=int(self._clock()),
        )

    def _cents(self, item: dict, operation: str) -> Optional[int]:
        """USD cents of an offer, None when the offer has no price"""
        price = item.get("price")
        if price is None:
            return None
        if not isinstance(price, dict):
            raise UpstreamMalformedResponse(f"Bad price object {price!r}", self.name, operation)
        raw = price.get("USD")
        if raw in (None, ""):
            return None
        if isinstance(raw, bool) or not isinstance(raw, (str, int)):
            raise UpstreamMalformedResponse(f"Bad price value {raw!r}", self.name, operation)
        try:
            cents = int(str(raw))
        except ValueError:
            raise UpstreamMalformedResponse(f"Bad price value {raw!r}", self.name, operation)
        return self._normalize(cents, operation)

    def _objects(self, data, operation: str) -> list:
        self._expect(isinstance(data, dict), operation, "expected an object")
        objects = data.get("objects") or []
        self._expect(isinstance(objects, list), operation, "'objects' is not a list")
        return [o for o in objects if isinstance(o, dict)]

    @staticmethod
    def _float_value(extra: dict) -> Optional[Decimal]:
        value = extra.get("floatValue")
        if value is None:
            return None
        try:
            return Decimal(str(value))
        except InvalidOperation:
            return None

    async def search(self, query: str, game: str, limit: int) -> list[Listing]:
        page_size = self.cap_limit(limit)
        if page_size < limit:
            logger.debug(f"[{self.name}] limit {limit} capped to {page_size}")

        params = {
            "gameId": self.game_id(game),
            "title": query or "",
            "limit": page_size,
            "offset": 0,
            "orderBy": "price",
            "orderDir": "asc",
            "currency": Currency.USD.value,
        }
        data = await self._get_json(ITEMS_PATH, params, "search")

        listings = []
        for obj in self._objects(data, "search"):
            title = obj.get("title")
            if not title or not isinstance(title, str):
                continue
            extra = obj.get("extra")
            if not isinstance(extra, dict):
                extra = {}
            stickers = extra.get("stickers")
            if not isinstance(stickers, list):
                stickers = []
            sticker_names = tuple(
                s["name"] for s in stickers if isinstance(s, dict) and isinstance(s.get("name"), str)
            )
            listings.append(Listing(
                name=title,
                market_key=title,
                icon_ref=obj.get("image") if isinstance(obj.get("image"), str) else None,
                price_minor=self._cents(obj, "search") or 0,
                currency=Currency.USD,
                float_value=self._float_value(extra),
                stickers=sticker_names,
                marketplace=self.name,
            ))
        return listings

    async def price_lookup(self, market_key: str, game: str, currency: Currency) -> PriceQuote:
        """Cheapest offer whose title matches exactly; sentinel when none"""
        params = {
            "gameId": self.game_id(game),
            "title": market_key,
            "limit": self.cap_limit(LOOKUP_PAGE_SIZE),
            "offset": 0,
            "orderBy": "price",
            "orderDir": "asc",
            "currency": Currency.USD.value,
        }
        data = await self._get_json(ITEMS_PATH, params, "price_lookup")

        prices = [
            cents
            for obj in self._objects(data, "price_lookup")
            if obj.get("title") == market_key
            for cents in [self._cents(obj, "price_lookup")]
            if cents
        ]
        if not prices:
            return PriceQuote.unavailable(market_key, Currency.USD, self.name)
        return PriceQuote(
            market_key=market_key,
            price_minor=min(prices),
            currency=Currency.USD,
            marketplace=self.name,
        )
