"""Steam Community Market adapter (unauthenticated, scraped endpoints)"""
import logging
from typing import Optional

from config import BROWSER_USER_AGENT, STEAM_IMAGE_BASE_URL

from .base import BaseMarketplace, Listing, PriceHistory, PriceQuote
from .errors import UpstreamMalformedResponse
from .pricing import Currency, parse_currency

logger = logging.getLogger(__name__)

# Steam's numeric wallet currency ids
STEAM_CURRENCY_IDS = {
    Currency.USD: 1,
    Currency.GBP: 2,
    Currency.EUR: 3,
    Currency.RUB: 5,
    Currency.PLN: 6,
    Currency.UAH: 18,
    Currency.CNY: 23,
}


class SteamMarketplace(BaseMarketplace):
    """
    Steam Community Market.

    No credentials, but requests without a browser User-Agent are blocked.
    A missing field in a 200 response means "no data", not a failure.
    """

    def _default_headers(self) -> dict[str, str]:
        headers = super()._default_headers()
        headers["User-Agent"] = BROWSER_USER_AGENT
        return headers

    def _icon_url(self, icon: Optional[str]) -> Optional[str]:
        return f"{STEAM_IMAGE_BASE_URL}{icon}" if icon else None

    async def search(self, query: str, game: str, limit: int) -> list[Listing]:
        """Search listings via /market/search/render (JSON mode)"""
        params = {
            "query": query or "",
            "appid": self.game_id(game),
            "norender": 1,
            "start": 0,
            "count": self.cap_limit(limit),
            "search_descriptions": 0,
            "sort_column": "popular",
            "sort_dir": "desc",
        }
        data = await self._get_json("/market/search/render/", params, "search")
        self._expect(isinstance(data, dict), "search", "expected an object")

        results = data.get("results") or []
        self._expect(isinstance(results, list), "search", "'results' is not a list")

        listings = []
        for item in results:
            if not isinstance(item, dict):
                continue
            description = item.get("asset_description")
            if not isinstance(description, dict):
                description = {}
            market_key = item.get("hash_name") or description.get("market_hash_name") or item.get("name")
            if not market_key or not isinstance(market_key, str):
                continue

            price_text = item.get("sell_price_text")
            self._expect(price_text is None or isinstance(price_text, str), "search", "sell_price_text is not text")
            price_minor = self._normalize(price_text, "search") if price_text else 0

            listings.append(Listing(
                name=item.get("name") or market_key,
                market_key=market_key,
                icon_ref=self._icon_url(description.get("icon_url")),
                price_minor=price_minor,
                currency=parse_currency(price_text),
                marketplace=self.name,
            ))

        logger.debug(f"[{self.name}] search '{query}' -> {len(listings)} listings")
        return listings

    async def price_lookup(self, market_key: str, game: str, currency: Currency) -> PriceQuote:
        """Lowest current price via /market/priceoverview"""
        params = {
            "appid": self.game_id(game),
            "currency": STEAM_CURRENCY_IDS.get(currency, 1),
            "market_hash_name": market_key,
        }
        data = await self._get_json("/market/priceoverview/", params, "price_lookup")
        self._expect(isinstance(data, dict), "price_lookup", "expected an object")

        price_text = data.get("lowest_price") or data.get("median_price")
        self._expect(price_text is None or isinstance(price_text, str), "price_lookup", "price is not text")
        quote_currency = parse_currency(price_text, default=currency) if price_text else currency
        return self._quote(market_key, price_text, quote_currency, "price_lookup")

    async def price_history(self, market_key: str, game: str, currency: Currency) -> PriceHistory:
        """
        Price series via /market/pricehistory.

        The body may arrive as text with a BOM prefix; ``_get_json`` strips
        it. A non-200 status or unparsable body raises, so a failure is never
        mistaken for an empty history.
        """
        params = {
            "appid": self.game_id(game),
            "currency": STEAM_CURRENCY_IDS.get(currency, 1),
            "market_hash_name": market_key,
        }
        data = await self._get_json("/market/pricehistory/", params, "price_history")
        self._expect(isinstance(data, dict), "price_history", "expected an object")

        prices = data.get("prices")
        if prices is None or prices is False:
            prices = []
        if not isinstance(prices, list):
            raise UpstreamMalformedResponse("'prices' is not a list", self.name, "price_history")

        return PriceHistory(success=bool(data.get("success", False)), prices=prices)
