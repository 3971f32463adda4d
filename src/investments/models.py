"""
Investment data models.
"""

from datetime import datetime
from typing import Optional, List, Dict
from pydantic import BaseModel, Field

from markets.pricing import Currency


class InvestmentCreate(BaseModel):
    """Record a new purchase"""
    item_name: str = Field(..., min_length=1, max_length=200)
    game: str = Field(..., min_length=1, max_length=40)
    marketplace: Optional[str] = None
    quantity: int = Field(default=1, gt=0)
    buy_price: float = Field(..., gt=0)  # major units, per item
    currency: Currency = Currency.USD
    notes: Optional[str] = None


class InvestmentUpdate(BaseModel):
    """Update an existing record"""
    item_name: Optional[str] = Field(None, min_length=1, max_length=200)
    marketplace: Optional[str] = None
    quantity: Optional[int] = Field(None, gt=0)
    buy_price: Optional[float] = Field(None, gt=0)
    notes: Optional[str] = None


class Investment(BaseModel):
    """Stored investment record"""
    id: str
    item_name: str
    game: str
    marketplace: Optional[str] = None
    quantity: int
    buy_price: float
    currency: Currency
    total_cost: float
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class InvestmentSummary(BaseModel):
    """All records with totals"""
    investments: List[Investment]
    total_items: int
    total_invested: Dict[str, float]  # per currency
