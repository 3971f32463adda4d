"""
Marketplace configuration.

Built once at startup from ``config`` constants and environment credentials,
then handed to each adapter's constructor. Nothing reads the environment
after boot.
"""
import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Optional

from config import (
    GAME_IDS,
    MARKET_BASE_URLS,
    MARKET_FEE_RATES,
    MARKET_MAX_PAGE_SIZE,
    MIN_CALL_SPACING,
)

from .errors import ConfigurationMissing

logger = logging.getLogger(__name__)


class MarketKind(str, Enum):
    STEAM = "steam"
    DMARKET = "dmarket"
    SKINPORT = "skinport"


class AuthMode(str, Enum):
    NONE = "none"
    SIGNATURE = "signature"
    BASIC = "basic"


@dataclass(frozen=True)
class MarketplaceConfig:
    """Static, read-only data for one marketplace adapter"""
    kind: MarketKind
    name: str
    base_url: str
    fee_rate: float
    auth_mode: AuthMode
    game_ids: Mapping[str, str] = field(default_factory=dict)
    max_page_size: int = 100
    min_spacing: float = MIN_CALL_SPACING
    # Credentials; excluded from repr so they never end up in logs
    api_key: Optional[str] = field(default=None, repr=False)
    api_secret: Optional[str] = field(default=None, repr=False)

    def to_dict(self) -> dict:
        return {
            "market": self.kind.value,
            "name": self.name,
            "fee_rate": self.fee_rate,
            "auth": self.auth_mode.value,
            "games": sorted(self.game_ids),
            "max_page_size": self.max_page_size,
        }


def _credential(env: Mapping[str, str], *names: str) -> tuple[str, ...]:
    values = tuple((env.get(n) or "").strip() for n in names)
    missing = [n for n, v in zip(names, values) if not v]
    if missing:
        raise ConfigurationMissing(f"Missing credentials: {', '.join(missing)}")
    return values


def _base(kind: MarketKind, name: str, auth_mode: AuthMode, **extra) -> MarketplaceConfig:
    return MarketplaceConfig(
        kind=kind,
        name=name,
        base_url=MARKET_BASE_URLS[kind.value],
        fee_rate=MARKET_FEE_RATES[kind.value],
        auth_mode=auth_mode,
        game_ids=dict(GAME_IDS[kind.value]),
        max_page_size=MARKET_MAX_PAGE_SIZE[kind.value],
        **extra,
    )


def steam_config(env: Mapping[str, str]) -> MarketplaceConfig:
    return _base(MarketKind.STEAM, "Steam", AuthMode.NONE)


def dmarket_config(env: Mapping[str, str]) -> MarketplaceConfig:
    public_key, secret_key = _credential(env, "DMARKET_PUBLIC_KEY", "DMARKET_SECRET_KEY")
    return _base(
        MarketKind.DMARKET, "DMarket", AuthMode.SIGNATURE,
        api_key=public_key, api_secret=secret_key,
    )


def skinport_config(env: Mapping[str, str]) -> MarketplaceConfig:
    client_id, client_secret = _credential(env, "SKINPORT_CLIENT_ID", "SKINPORT_CLIENT_SECRET")
    return _base(
        MarketKind.SKINPORT, "Skinport", AuthMode.BASIC,
        api_key=client_id, api_secret=client_secret,
    )


CONFIG_BUILDERS = {
    MarketKind.STEAM: steam_config,
    MarketKind.DMARKET: dmarket_config,
    MarketKind.SKINPORT: skinport_config,
}


def load_marketplace_configs(env: Optional[Mapping[str, str]] = None) -> dict[MarketKind, MarketplaceConfig]:
    """Build every marketplace config that has its credentials.

    A marketplace with missing credentials is logged and left out; the
    others still load.
    """
    env = os.environ if env is None else env
    configs: dict[MarketKind, MarketplaceConfig] = {}
    for kind, builder in CONFIG_BUILDERS.items():
        try:
            configs[kind] = builder(env)
        except ConfigurationMissing as e:
            logger.warning(f"[{kind.value}] Disabled: {e}")
    logger.info(f"Configured marketplaces: {', '.join(k.value for k in configs) or 'none'}")
    return configs
