"""Arbitrage calculation engine"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Callable, Optional

from config import OPPORTUNITY_HISTORY_SIZE
from markets.base import BaseMarketplace, Listing, PriceQuote
from markets.errors import InvalidRequest
from markets.pricing import Currency, to_major
from markets.registry import MarketRegistry
from src.rates import convert

logger = logging.getLogger(__name__)


class ScanState(str, Enum):
    FETCHING_SOURCE = "fetching_source"
    QUOTING_DESTINATION = "quoting_destination"
    SCORING = "scoring"
    RANKED = "ranked"


@dataclass
class ArbitrageOpportunity:
    """Buy on the source marketplace, sell on the destination, net of the destination fee"""
    item_name: str
    icon_ref: Optional[str]
    source_market: str
    source_price_minor: int
    dest_market: str
    dest_price_minor: int
    fee_minor: int
    net_spread_minor: int
    currency: Currency = Currency.USD
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def net_spread_percent(self) -> float:
        """Net spread relative to the buy price"""
        return (self.net_spread_minor / self.source_price_minor) * 100

    def to_dict(self) -> dict:
        return {
            "item_name": self.item_name,
            "icon_url": self.icon_ref,
            "source_market": self.source_market,
            "source_price": to_major(self.source_price_minor),
            "dest_market": self.dest_market,
            "dest_price": to_major(self.dest_price_minor),
            "fee": to_major(self.fee_minor),
            "net_spread": to_major(self.net_spread_minor),
            "net_spread_percent": round(self.net_spread_percent, 2),
            "currency": self.currency.value,
            "timestamp": self.timestamp.isoformat(),
        }

    def to_csv_row(self) -> list[str]:
        """Convert to CSV row for export"""
        return [
            self.timestamp.isoformat(),
            self.item_name,
            self.source_market,
            self.dest_market,
            f"{to_major(self.source_price_minor):.2f}",
            f"{to_major(self.dest_price_minor):.2f}",
            f"{to_major(self.fee_minor):.2f}",
            f"{to_major(self.net_spread_minor):.2f}",
            self.currency.value,
        ]

    @staticmethod
    def csv_headers() -> list[str]:
        """CSV headers for export"""
        return [
            "timestamp",
            "item_name",
            "source_market",
            "dest_market",
            "source_price",
            "dest_price",
            "fee",
            "net_spread",
            "currency",
        ]


def fee_for(price_minor: int, fee_rate: float) -> int:
    """Destination fee in minor units, rounded half up"""
    fee = Decimal(price_minor) * Decimal(str(fee_rate))
    return int(fee.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class ArbitrageEngine:
    """
    Cross-marketplace arbitrage scanner.

    One request walks Fetching-Source -> Quoting-Destination -> Scoring ->
    Ranked:

    1. search the source marketplace (a failure here fails the request)
    2. quote every listing on the destination through the pacing
       controller, concurrently or from one catalog response; a failed
       quote becomes the zero sentinel
    3. fee = dest_price * destination fee rate,
       net_spread = dest_price - source_price - fee
    4. drop pairs with a zero price on either side, optionally drop
       non-positive spreads
    5. keep source-listing order unless sorting is asked for
    """

    def __init__(self, registry: MarketRegistry, history_size: int = OPPORTUNITY_HISTORY_SIZE):
        self.registry = registry
        self.history_size = history_size
        # Recent opportunities across requests (for export)
        self.history: list[ArbitrageOpportunity] = []
        self._on_opportunity_callbacks: list[Callable[[ArbitrageOpportunity], None]] = []

    def on_opportunity(self, callback: Callable[[ArbitrageOpportunity], None]):
        """Register callback for emitted opportunities"""
        self._on_opportunity_callbacks.append(callback)

    async def find_opportunities(
        self,
        source: str,
        destination: str,
        game: str,
        limit: int = 20,
        currency: Currency = Currency.USD,
        query: str = "",
        only_profitable: bool = False,
        sort_by_spread: bool = False,
    ) -> list[ArbitrageOpportunity]:
        """Scan ``source`` listings against ``destination`` prices"""
        src = self.registry.get(source)
        dst = self.registry.get(destination)
        if limit is None or int(limit) < 1:
            raise InvalidRequest(f"Invalid limit '{limit}'")
        # Both sides must know the game before anything goes upstream
        src.game_id(game)
        dst.game_id(game)

        route = f"{src.name}->{dst.name}"
        controller = self.registry.controller

        logger.debug(f"[{route}] {ScanState.FETCHING_SOURCE.value}")
        page_size = src.cap_limit(limit)
        listings = await controller.call(src, lambda: src.search(query, game, page_size))

        logger.debug(f"[{route}] {ScanState.QUOTING_DESTINATION.value}: {len(listings)} listings")
        quotes = await controller.quotes_or_sentinels(
            dst, [listing.market_key for listing in listings], game, currency
        )

        logger.debug(f"[{route}] {ScanState.SCORING.value}")
        opportunities = []
        for listing, quote in zip(listings, quotes):
            opp = self.score(listing, src, quote, dst, currency)
            if opp is None:
                continue
            if only_profitable and opp.net_spread_minor <= 0:
                continue
            opportunities.append(opp)

        if sort_by_spread:
            opportunities.sort(key=lambda o: o.net_spread_minor, reverse=True)

        logger.info(
            f"[{route}] {ScanState.RANKED.value}: {len(opportunities)} opportunities "
            f"from {len(listings)} listings ({sum(1 for q in quotes if not q.available)} unpriced)"
        )
        self._record(opportunities)
        return opportunities

    def score(
        self,
        listing: Listing,
        source: BaseMarketplace,
        quote: PriceQuote,
        destination: BaseMarketplace,
        currency: Currency,
    ) -> Optional[ArbitrageOpportunity]:
        """Opportunity for one listing/quote pair, None when either price is missing"""
        source_price = convert(listing.price_minor, listing.currency, currency)
        dest_price = convert(quote.price_minor, quote.currency, currency)
        if source_price <= 0 or dest_price <= 0:
            return None

        fee = fee_for(dest_price, destination.fee_rate)
        return ArbitrageOpportunity(
            item_name=listing.name,
            icon_ref=listing.icon_ref,
            source_market=source.kind.value,
            source_price_minor=source_price,
            dest_market=destination.kind.value,
            dest_price_minor=dest_price,
            fee_minor=fee,
            net_spread_minor=dest_price - source_price - fee,
            currency=currency,
        )

    def _record(self, opportunities: list[ArbitrageOpportunity]):
        for opp in opportunities:
            self.history.append(opp)
            if len(self.history) > self.history_size:
                self.history.pop(0)

            for callback in self._on_opportunity_callbacks:
                try:
                    callback(opp)
                except Exception as e:
                    logger.error(f"Opportunity callback error: {e}")

    def get_state(self) -> dict:
        """Get current state for API"""
        return {
            "markets": self.registry.to_list(),
            "history": [o.to_dict() for o in self.history[-20:]],  # Last 20
            "pacing": self.registry.controller.get_state(),
        }
