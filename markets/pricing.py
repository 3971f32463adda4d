"""
Price normalization.

Every price that leaves a marketplace adapter goes through ``normalize_price``
so the rest of the service only ever sees non-negative integer minor units
(cents). Upstreams disagree on formatting:

    "$12.34"          -> 1234
    "12,34€"          -> 1234
    "1 234,56 pуб."   -> 123456
    "1,234.56"        -> 123456
    "12.34 USD"       -> 1234
    1500 (int)        -> 1500   (already minor units)
    12.34 (float)     -> 1234   (major units)
"""
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from enum import Enum
from typing import Optional, Union

from .errors import InvalidRequest, ParseFailure

RawPrice = Union[str, int, float, Decimal, None]

_KEEP_RE = re.compile(r"[^\d,.]")
_NEGATIVE_RE = re.compile(r"^[^\d]*[-−]")
_ISO_RE = re.compile(r"\b(USD|EUR|UAH|GBP|PLN|CNY|RUB)\b", re.IGNORECASE)
_CENT = Decimal("0.01")


class Currency(str, Enum):
    USD = "USD"
    EUR = "EUR"
    UAH = "UAH"
    GBP = "GBP"
    PLN = "PLN"
    CNY = "CNY"
    RUB = "RUB"


# Checked in order; longer markers first so "zł" wins over a bare "z"
_CURRENCY_SYMBOLS = [
    ("pуб", Currency.RUB),
    ("руб", Currency.RUB),
    ("₽", Currency.RUB),
    ("zł", Currency.PLN),
    ("₴", Currency.UAH),
    ("€", Currency.EUR),
    ("£", Currency.GBP),
    ("¥", Currency.CNY),
    ("$", Currency.USD),
]


def resolve_currency(code: Optional[str], default: Currency = Currency.USD) -> Currency:
    """Resolve a caller-supplied currency code, rejecting unknown ones"""
    if code is None or not str(code).strip():
        return default
    try:
        return Currency(str(code).strip().upper())
    except ValueError:
        raise InvalidRequest(f"Unknown currency '{code}'")


def parse_currency(text: Optional[str], default: Currency = Currency.USD) -> Currency:
    """Guess the currency of a formatted price string"""
    if not text:
        return default
    match = _ISO_RE.search(text)
    if match:
        return Currency(match.group(1).upper())
    for marker, currency in _CURRENCY_SYMBOLS:
        if marker in text:
            return currency
    return default


def _to_minor(amount: Decimal) -> int:
    if not amount.is_finite():
        raise ParseFailure(f"Price is not a finite number: {amount}")
    if amount < 0:
        raise ParseFailure(f"Negative price: {amount}")
    return int(amount.quantize(_CENT, rounding=ROUND_HALF_UP) * 100)


def _split_decimal(cleaned: str, locale_hint: Optional[str]) -> tuple[str, str]:
    """Split cleaned text into (whole, fraction) digit strings"""
    if locale_hint in (",", "."):
        if locale_hint not in cleaned:
            return cleaned, ""
        whole, _, frac = cleaned.rpartition(locale_hint)
        return whole, frac

    last = max(cleaned.rfind(","), cleaned.rfind("."))
    if last == -1:
        return cleaned, ""
    trailing = len(cleaned) - last - 1
    # A trailing group of one or two digits is the fractional part,
    # three digits after the last separator means a thousands group.
    if 1 <= trailing <= 2:
        return cleaned[:last], cleaned[last + 1:]
    return cleaned, ""


def normalize_price(raw: RawPrice, locale_hint: Optional[str] = None) -> int:
    """
    Convert a raw price into integer minor units.

    Args:
        raw: Price text, or an already structured number. ``int`` values are
            taken as minor units; ``float``/``Decimal`` values as major units.
        locale_hint: Force the decimal separator ("," or ".") instead of
            inferring it from the digit grouping.

    Raises:
        ParseFailure: empty, negative or unparsable input.
    """
    if isinstance(raw, bool):
        raise ParseFailure(f"Not a price: {raw!r}")
    if isinstance(raw, int):
        if raw < 0:
            raise ParseFailure(f"Negative price: {raw}")
        return raw
    if isinstance(raw, (float, Decimal)):
        return _to_minor(Decimal(str(raw)))
    if raw is None:
        raise ParseFailure("Empty price")

    text = str(raw)
    if _NEGATIVE_RE.match(text):
        raise ParseFailure(f"Negative price: {text!r}")

    # "1 234,56 pуб." leaves a trailing period behind
    cleaned = _KEEP_RE.sub("", text).rstrip(",.")
    if not any(ch.isdigit() for ch in cleaned):
        raise ParseFailure(f"No digits in price: {text!r}")

    whole, frac = _split_decimal(cleaned, locale_hint)
    whole = whole.replace(",", "").replace(".", "")
    frac = frac.replace(",", "").replace(".", "")

    try:
        amount = Decimal(f"{whole or '0'}.{frac or '0'}")
    except InvalidOperation:
        raise ParseFailure(f"Unparsable price: {text!r}")
    return _to_minor(amount)


def to_major(minor: int) -> float:
    """Minor units -> major units for JSON responses"""
    return round(minor / 100, 2)
