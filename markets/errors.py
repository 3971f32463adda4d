"""Error taxonomy for marketplace calls"""
from typing import Optional


class ParseFailure(ValueError):
    """Price text could not be turned into a non-negative minor-unit amount"""


class MarketError(Exception):
    """Base class for every failure raised by the marketplace layer"""

    def __init__(
        self,
        message: str,
        marketplace: Optional[str] = None,
        operation: Optional[str] = None,
        status: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.marketplace = marketplace
        self.operation = operation
        self.status = status

    def __str__(self) -> str:
        context = [p for p in (self.marketplace, self.operation) if p]
        if self.status is not None:
            context.append(f"status={self.status}")
        if context:
            return f"{self.message} ({', '.join(context)})"
        return self.message


class InvalidRequest(MarketError):
    """Unknown game/marketplace or a missing parameter; no upstream call made"""


class UpstreamUnavailable(MarketError):
    """Transport failure: DNS, connection reset, timeout"""


class UpstreamRateLimited(MarketError):
    """Marketplace answered HTTP 429"""


class UpstreamMalformedResponse(MarketError):
    """Body could not be decoded into the expected shape"""


class UpstreamRejected(MarketError):
    """Definite non-success status unrelated to rate limiting"""


class ConfigurationMissing(MarketError):
    """Credentials for a marketplace are absent"""
