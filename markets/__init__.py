"""Marketplace adapters"""
from .base import BaseMarketplace, Listing, PriceHistory, PriceQuote
from .dmarket import DMarketMarketplace
from .errors import (
    ConfigurationMissing,
    InvalidRequest,
    MarketError,
    ParseFailure,
    UpstreamMalformedResponse,
    UpstreamRateLimited,
    UpstreamRejected,
    UpstreamUnavailable,
)
from .pacing import PacingController
from .pricing import Currency, normalize_price, parse_currency, resolve_currency, to_major
from .registry import MarketRegistry, build_marketplaces
from .settings import AuthMode, MarketKind, MarketplaceConfig, load_marketplace_configs
from .signer import sign, signed_headers
from .skinport import SkinportMarketplace
from .steam import SteamMarketplace

__all__ = [
    "BaseMarketplace",
    "Listing",
    "PriceQuote",
    "PriceHistory",
    "SteamMarketplace",
    "DMarketMarketplace",
    "SkinportMarketplace",
    "MarketRegistry",
    "build_marketplaces",
    "PacingController",
    "MarketKind",
    "AuthMode",
    "MarketplaceConfig",
    "load_marketplace_configs",
    "Currency",
    "normalize_price",
    "parse_currency",
    "resolve_currency",
    "to_major",
    "sign",
    "signed_headers",
    "MarketError",
    "InvalidRequest",
    "UpstreamUnavailable",
    "UpstreamRateLimited",
    "UpstreamMalformedResponse",
    "UpstreamRejected",
    "ConfigurationMissing",
    "ParseFailure",
]
