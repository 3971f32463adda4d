"""Configuration for the Skin Market Arbitrage service"""
import os

# ============================================================
# MARKETPLACES
# ============================================================
# Base URLs per marketplace
MARKET_BASE_URLS = {
    "steam": "https://steamcommunity.com",
    "dmarket": "https://api.dmarket.com",
    "skinport": "https://api.skinport.com",
}

# Fraction of the sale price the marketplace keeps
MARKET_FEE_RATES = {
    "steam": 0.15,
    "dmarket": 0.07,
    "skinport": 0.12,
}

# Upstream page size limits
MARKET_MAX_PAGE_SIZE = {
    "steam": 100,
    "dmarket": 100,
    "skinport": 100,
}

# Game identifiers per marketplace (normalized game key -> upstream id)
GAME_IDS = {
    "steam": {
        "cs2": "730",
        "dota2": "570",
        "pubg": "578080",
        "rust": "252490",
        "tf2": "440",
    },
    "dmarket": {
        "cs2": "a8db",
        "dota2": "9a92",
        "rust": "rust",
        "tf2": "tf2",
    },
    "skinport": {
        "cs2": "730",
        "dota2": "570",
        "rust": "252490",
        "tf2": "440",
    },
}

# Steam refuses requests without a browser-like agent
BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)

STEAM_IMAGE_BASE_URL = "https://steamcommunity-a.akamaihd.net/economy/image/"

DEFAULT_CURRENCY = "USD"

# ============================================================
# PACING / RETRIES
# ============================================================
MIN_CALL_SPACING = int(os.getenv("MARKET_MIN_SPACING_MS", "300")) / 1000  # seconds
MAX_RETRIES = int(os.getenv("MARKET_MAX_RETRIES", "3"))
RETRY_BACKOFF_BASE = 1.0  # seconds, doubled per attempt
REQUEST_TIMEOUT = float(os.getenv("MARKET_REQUEST_TIMEOUT", "15"))  # seconds

# Opportunities kept in memory for export
OPPORTUNITY_HISTORY_SIZE = 100

# ============================================================
# EXCHANGE RATES (units of currency per 1 USD)
# ============================================================
EXCHANGE_RATES = {
    "USD": 1.0,
    "EUR": 0.92,
    "GBP": 0.79,
    "PLN": 3.98,
    "UAH": 41.2,
    "CNY": 7.24,
    "RUB": 92.5,
}

# ============================================================
# WEB SERVER
# ============================================================
WEB_HOST = os.getenv("WEB_HOST", "0.0.0.0")
WEB_PORT = int(os.getenv("WEB_PORT", "3001"))

# Browser origins allowed to call the API ("*" allows any)
ALLOWED_ORIGINS = [
    o.strip()
    for o in os.getenv("ALLOWED_ORIGINS", "http://localhost:3000,http://localhost:5173").split(",")
    if o.strip()
]
