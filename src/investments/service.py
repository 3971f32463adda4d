"""
Investment record service.
"""

import logging
import uuid
from collections import defaultdict
from datetime import datetime
from typing import Optional, List, Dict

from .models import Investment, InvestmentCreate, InvestmentUpdate, InvestmentSummary

logger = logging.getLogger(__name__)


class InvestmentService:
    """
    Key-value document store for investment records.

    Documents are plain dicts keyed by a random id; models are built on the
    way out.
    """

    def __init__(self):
        # In-memory storage (replace with a document database in production)
        self._documents: Dict[str, Dict] = {}

    @staticmethod
    def _total_cost(quantity: int, buy_price: float) -> float:
        return round(quantity * buy_price, 2)

    def create(self, data: InvestmentCreate) -> Investment:
        """Store a new investment record"""
        now = datetime.now()
        doc = {
            "id": uuid.uuid4().hex,
            "item_name": data.item_name,
            "game": data.game,
            "marketplace": data.marketplace,
            "quantity": data.quantity,
            "buy_price": data.buy_price,
            "currency": data.currency,
            "total_cost": self._total_cost(data.quantity, data.buy_price),
            "notes": data.notes,
            "created_at": now,
            "updated_at": now,
        }
        self._documents[doc["id"]] = doc

        logger.info(f"Recorded investment '{data.item_name}' x{data.quantity}")

        return Investment(**doc)

    def get(self, investment_id: str) -> Optional[Investment]:
        doc = self._documents.get(investment_id)
        return Investment(**doc) if doc else None

    def list(self, game: Optional[str] = None) -> List[Investment]:
        """All records, newest first, optionally for one game"""
        docs = sorted(self._documents.values(), key=lambda d: d["created_at"], reverse=True)
        if game:
            docs = [d for d in docs if d["game"].lower() == game.lower()]
        return [Investment(**d) for d in docs]

    def update(self, investment_id: str, data: InvestmentUpdate) -> Optional[Investment]:
        """Apply the fields that were provided"""
        doc = self._documents.get(investment_id)
        if not doc:
            return None

        for key, value in data.model_dump(exclude_none=True).items():
            doc[key] = value
        doc["total_cost"] = self._total_cost(doc["quantity"], doc["buy_price"])
        doc["updated_at"] = datetime.now()

        return Investment(**doc)

    def delete(self, investment_id: str) -> bool:
        if investment_id not in self._documents:
            return False

        del self._documents[investment_id]
        logger.info(f"Deleted investment {investment_id}")
        return True

    def summary(self) -> InvestmentSummary:
        investments = self.list()
        totals: Dict[str, float] = defaultdict(float)
        for inv in investments:
            totals[inv.currency.value] += inv.total_cost

        return InvestmentSummary(
            investments=investments,
            total_items=sum(inv.quantity for inv in investments),
            total_invested={k: round(v, 2) for k, v in totals.items()},
        )


# Global investment service instance
investment_service = InvestmentService()
