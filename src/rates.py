"""
Static currency conversion.

Rates are fixed at import from ``config.EXCHANGE_RATES`` (units per 1 USD);
there is no live rate feed.
"""
from decimal import Decimal, ROUND_HALF_UP

from config import EXCHANGE_RATES
from markets.errors import InvalidRequest
from markets.pricing import Currency

_RATES: dict[Currency, Decimal] = {
    Currency(code): Decimal(str(rate)) for code, rate in EXCHANGE_RATES.items()
}


def rate(currency: Currency) -> Decimal:
    """Units of ``currency`` per 1 USD"""
    try:
        return _RATES[currency]
    except KeyError:
        raise InvalidRequest(f"No exchange rate for {currency.value}")


def convert(amount_minor: int, from_currency: Currency, to_currency: Currency) -> int:
    """Convert minor units between currencies, rounding half up"""
    if from_currency == to_currency or amount_minor == 0:
        return amount_minor
    converted = Decimal(amount_minor) * rate(to_currency) / rate(from_currency)
    return int(converted.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def rates_table() -> dict:
    return {
        "base": Currency.USD.value,
        "rates": {c.value: float(r) for c, r in _RATES.items()},
    }
