"""Skinport adapter (basic-auth)"""
import base64
import logging
from decimal import Decimal

from .base import BaseMarketplace, Listing, PriceQuote
from .errors import UpstreamMalformedResponse
from .pricing import Currency, RawPrice

logger = logging.getLogger(__name__)

ITEMS_PATH = "/v1/items"

SUPPORTED_CURRENCIES = {Currency.USD, Currency.EUR, Currency.GBP, Currency.PLN, Currency.CNY, Currency.RUB}


class SkinportMarketplace(BaseMarketplace):
    """
    Skinport public API.

    ``/v1/items`` ignores pagination and sorting and returns the whole
    catalog for a game, unsorted, so filtering and limiting happen here.
    The catalog carries no image field; listings have no icon.
    """

    catalog_pricing = True

    def _auth_headers(self, method: str, path: str, query: str, body: str) -> dict[str, str]:
        credentials = f"{self.config.api_key}:{self.config.api_secret}".encode("utf-8")
        return {"Authorization": f"Basic {base64.b64encode(credentials).decode('ascii')}"}

    def _min_price(self, item: dict, operation: str) -> RawPrice:
        """min_price is a JSON number in major units, null when nothing is listed"""
        value = item.get("min_price")
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, (int, float, str)):
            raise UpstreamMalformedResponse(f"Bad min_price {value!r}", self.name, operation)
        if isinstance(value, (int, float)):
            # 15 means 15.00 here, not 15 cents
            return Decimal(str(value))
        return value

    def _currency(self, currency: Currency) -> Currency:
        return currency if currency in SUPPORTED_CURRENCIES else Currency.USD

    async def _catalog(self, game: str, currency: Currency, operation: str) -> list[dict]:
        params = {
            "app_id": self.game_id(game),
            "currency": currency.value,
            "tradable": 0,
        }
        data = await self._get_json(ITEMS_PATH, params, operation)
        self._expect(isinstance(data, list), operation, "expected a list of items")
        return [
            item for item in data
            if isinstance(item, dict) and isinstance(item.get("market_hash_name"), str) and item["market_hash_name"]
        ]

    def _item_quote(self, item: dict, currency: Currency, operation: str) -> PriceQuote:
        """Quote for one catalog entry; a bad price only loses that entry"""
        market_key = item["market_hash_name"]
        try:
            return self._quote(market_key, self._min_price(item, operation), currency, operation)
        except UpstreamMalformedResponse as e:
            logger.warning(f"[{self.name}] Skipping price for '{market_key}': {e}")
            return PriceQuote.unavailable(market_key, currency, self.name)

    async def search(self, query: str, game: str, limit: int) -> list[Listing]:
        currency = Currency.USD
        catalog = await self._catalog(game, currency, "search")

        needle = (query or "").strip().lower()
        matches = [item for item in catalog if needle in item["market_hash_name"].lower()]
        matches = matches[:self.cap_limit(limit)]
        logger.debug(f"[{self.name}] search '{query}': {len(matches)} of {len(catalog)} catalog items")

        return [
            Listing(
                name=item["market_hash_name"],
                market_key=item["market_hash_name"],
                icon_ref=None,
                price_minor=self._item_quote(item, currency, "search").price_minor,
                currency=currency,
                marketplace=self.name,
            )
            for item in matches
        ]

    async def price_table(self, game: str, currency: Currency) -> dict[str, PriceQuote]:
        """Every catalog price from a single /v1/items request"""
        quote_currency = self._currency(currency)
        catalog = await self._catalog(game, quote_currency, "price_table")
        return {
            item["market_hash_name"]: self._item_quote(item, quote_currency, "price_table")
            for item in catalog
        }

    async def price_lookup(self, market_key: str, game: str, currency: Currency) -> PriceQuote:
        table = await self.price_table(game, currency)
        quote = table.get(market_key)
        if quote is None:
            return PriceQuote.unavailable(market_key, self._currency(currency), self.name)
        return quote
