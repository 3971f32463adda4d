"""
Skin Market Arbitrage - supporting services

Investment records, static exchange rates and data export used by the
HTTP API.
"""

__version__ = "1.0.0"
