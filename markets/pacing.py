"""
Rate-limit pacing and retry.

One controller is shared by every request. For each marketplace it keeps the
time of the last dispatched call behind an ``asyncio.Lock``, so consecutive
dispatches to the same marketplace are at least ``min_spacing`` apart.
The lock only covers the wait-and-stamp step; the call itself runs outside
it, and different marketplaces never wait on each other.
"""
import asyncio
import logging
import time
from collections import defaultdict, deque
from typing import Awaitable, Callable, Optional, Sequence, TypeVar

from config import MAX_RETRIES, MIN_CALL_SPACING, RETRY_BACKOFF_BASE

from .base import BaseMarketplace, PriceQuote
from .errors import MarketError, UpstreamRateLimited
from .pricing import Currency

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PacingController:
    """Per-marketplace dispatch floor plus bounded retry on HTTP 429"""

    def __init__(
        self,
        min_spacing: float = MIN_CALL_SPACING,
        max_retries: int = MAX_RETRIES,
        backoff_base: float = RETRY_BACKOFF_BASE,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.min_spacing = min_spacing
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self._clock = clock
        self._sleep = sleep

        self._locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._last_dispatch: dict[str, float] = {}
        # Recent dispatch times per marketplace (diagnostics)
        self.dispatch_log: dict[str, deque] = defaultdict(lambda: deque(maxlen=100))
        self.retries = 0

    async def _wait_turn(self, market: str, spacing: float):
        """Block until ``market`` may dispatch, then stamp the dispatch time"""
        async with self._locks[market]:
            now = self._clock()
            last = self._last_dispatch.get(market)
            if last is not None:
                wait = last + spacing - now
                while wait > 0:
                    await self._sleep(wait)
                    now = self._clock()
                    wait = last + spacing - now
            self._last_dispatch[market] = now
            self.dispatch_log[market].append(now)

    async def with_pacing(
        self,
        market: str,
        call: Callable[[], Awaitable[T]],
        min_spacing: Optional[float] = None,
        max_retries: Optional[int] = None,
    ) -> T:
        """
        Run ``call`` under the pacing rule for ``market``.

        ``UpstreamRateLimited`` is retried with exponential backoff up to
        ``max_retries`` times, then re-raised. Any other failure propagates
        immediately.
        """
        spacing = self.min_spacing if min_spacing is None else min_spacing
        retries = self.max_retries if max_retries is None else max_retries

        attempt = 0
        while True:
            await self._wait_turn(market, spacing)
            try:
                return await call()
            except UpstreamRateLimited:
                if attempt >= retries:
                    logger.error(f"[{market}] Still rate limited after {attempt} retries, giving up")
                    raise
                delay = self.backoff_base * (2 ** attempt)
                attempt += 1
                self.retries += 1
                logger.warning(f"[{market}] Rate limited, retry {attempt}/{retries} in {delay:.2f}s")
                await self._sleep(delay)

    async def call(self, adapter: BaseMarketplace, call: Callable[[], Awaitable[T]]) -> T:
        """``with_pacing`` keyed and spaced by the adapter's own config"""
        return await self.with_pacing(adapter.kind.value, call, min_spacing=adapter.config.min_spacing)

    async def quote_or_sentinel(
        self,
        adapter: BaseMarketplace,
        market_key: str,
        game: str,
        currency: Currency,
    ) -> PriceQuote:
        """Paced price lookup that turns any marketplace failure into the zero sentinel"""
        try:
            return await self.call(adapter, lambda: adapter.price_lookup(market_key, game, currency))
        except MarketError as e:
            logger.warning(f"[{adapter.name}] Price for '{market_key}' unavailable: {e}")
            return PriceQuote.unavailable(market_key, currency, adapter.name)

    async def quotes_or_sentinels(
        self,
        adapter: BaseMarketplace,
        market_keys: Sequence[str],
        game: str,
        currency: Currency,
    ) -> list[PriceQuote]:
        """
        Quotes for a batch of items, in the order of ``market_keys``.

        A catalog-priced adapter answers the whole batch from one paced
        ``price_table`` call; others get one concurrent lookup per item.
        Either way a failure only turns the affected quotes into sentinels.
        """
        if not adapter.catalog_pricing:
            return list(await asyncio.gather(*(
                self.quote_or_sentinel(adapter, key, game, currency) for key in market_keys
            )))

        if not market_keys:
            return []
        try:
            table = await self.call(adapter, lambda: adapter.price_table(game, currency))
        except MarketError as e:
            logger.warning(f"[{adapter.name}] Price table unavailable, {len(market_keys)} items unpriced: {e}")
            table = {}
        return [
            table.get(key) or PriceQuote.unavailable(key, currency, adapter.name)
            for key in market_keys
        ]

    def get_state(self) -> dict:
        return {
            "min_spacing": self.min_spacing,
            "max_retries": self.max_retries,
            "retries": self.retries,
            "dispatches": {m: len(log) for m, log in self.dispatch_log.items()},
        }
