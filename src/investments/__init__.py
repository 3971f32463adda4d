"""
Investment records.

User-entered skin purchases kept in a simple in-memory document store:
- Create / read / update / delete
- Per-currency totals
"""

from .models import Investment, InvestmentCreate, InvestmentUpdate, InvestmentSummary
from .service import InvestmentService, investment_service

__all__ = [
    "Investment",
    "InvestmentCreate",
    "InvestmentUpdate",
    "InvestmentSummary",
    "InvestmentService",
    "investment_service",
]
