"""
Investment API routes.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status

from .models import Investment, InvestmentCreate, InvestmentUpdate, InvestmentSummary
from .service import InvestmentService, investment_service

router = APIRouter(prefix="/api/investments", tags=["Investments"])


def get_investment_service() -> InvestmentService:
    return investment_service


@router.get("", response_model=List[Investment])
async def list_investments(
    game: Optional[str] = None,
    service: InvestmentService = Depends(get_investment_service),
):
    """
    List recorded investments, newest first.
    """
    return service.list(game=game)


@router.post("", response_model=Investment, status_code=status.HTTP_201_CREATED)
async def create_investment(
    data: InvestmentCreate,
    service: InvestmentService = Depends(get_investment_service),
):
    return service.create(data)


@router.get("/summary", response_model=InvestmentSummary)
async def get_summary(service: InvestmentService = Depends(get_investment_service)):
    """
    All investments with per-currency totals.
    """
    return service.summary()


@router.get("/{investment_id}", response_model=Investment)
async def get_investment(
    investment_id: str,
    service: InvestmentService = Depends(get_investment_service),
):
    investment = service.get(investment_id)
    if not investment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Investment not found",
        )
    return investment


@router.put("/{investment_id}", response_model=Investment)
async def update_investment(
    investment_id: str,
    data: InvestmentUpdate,
    service: InvestmentService = Depends(get_investment_service),
):
    investment = service.update(investment_id, data)
    if not investment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Investment not found",
        )
    return investment


@router.delete("/{investment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_investment(
    investment_id: str,
    service: InvestmentService = Depends(get_investment_service),
):
    if not service.delete(investment_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Investment not found",
        )
