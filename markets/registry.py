"""Marketplace selection by explicit kind"""
import logging
from typing import Mapping, Optional

import aiohttp

from .base import BaseMarketplace
from .dmarket import DMarketMarketplace
from .errors import ConfigurationMissing, InvalidRequest
from .pacing import PacingController
from .settings import MarketKind, MarketplaceConfig, load_marketplace_configs
from .skinport import SkinportMarketplace
from .steam import SteamMarketplace

logger = logging.getLogger(__name__)

ADAPTERS: dict[MarketKind, type[BaseMarketplace]] = {
    MarketKind.STEAM: SteamMarketplace,
    MarketKind.DMARKET: DMarketMarketplace,
    MarketKind.SKINPORT: SkinportMarketplace,
}


def build_marketplaces(
    configs: Mapping[MarketKind, MarketplaceConfig],
    session: aiohttp.ClientSession,
) -> dict[MarketKind, BaseMarketplace]:
    """One adapter per configured marketplace"""
    return {kind: ADAPTERS[kind](config, session) for kind, config in configs.items()}


class MarketRegistry:
    """Configured adapters plus the shared pacing controller"""

    def __init__(
        self,
        marketplaces: Mapping[MarketKind, BaseMarketplace],
        controller: Optional[PacingController] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.marketplaces = dict(marketplaces)
        self.controller = controller or PacingController()
        self._session = session

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "MarketRegistry":
        """Load configs once and open the shared HTTP session (call inside a running loop)"""
        session = aiohttp.ClientSession()
        configs = load_marketplace_configs(env)
        return cls(build_marketplaces(configs, session), PacingController(), session)

    def get(self, name: Optional[str]) -> BaseMarketplace:
        """Adapter for a marketplace name; InvalidRequest / ConfigurationMissing otherwise"""
        if not name or not str(name).strip():
            raise InvalidRequest("Missing marketplace")
        try:
            kind = MarketKind(str(name).strip().lower())
        except ValueError:
            raise InvalidRequest(f"Unknown marketplace '{name}'")
        adapter = self.marketplaces.get(kind)
        if adapter is None:
            raise ConfigurationMissing(f"Marketplace '{kind.value}' is not configured", marketplace=kind.value)
        return adapter

    def to_list(self) -> list[dict]:
        return [adapter.config.to_dict() for adapter in self.marketplaces.values()]

    async def close(self):
        if self._session is not None and not self._session.closed:
            await self._session.close()
            logger.info("Marketplace HTTP session closed")
