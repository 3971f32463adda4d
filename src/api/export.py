"""
Data export endpoints (CSV).
"""

import csv
import io
from datetime import datetime, timedelta
from typing import Optional, List
from fastapi import APIRouter, Depends, Query, Response

from engine import ArbitrageEngine, ArbitrageOpportunity

from .dependencies import get_engine

router = APIRouter(prefix="/api/export", tags=["Export"])


def generate_csv(headers: List[str], rows: List[List[str]]) -> str:
    """Generate CSV string from headers and rows"""
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(headers)
    writer.writerows(rows)
    return output.getvalue()


@router.get("/opportunities/csv")
async def export_opportunities_csv(
    hours: int = Query(default=24, ge=1, le=168, description="Hours of history to export"),
    min_spread: float = Query(default=0.0, description="Minimum net spread in major units"),
    market: Optional[str] = Query(default=None, description="Filter by source or destination marketplace"),
    engine: ArbitrageEngine = Depends(get_engine),
):
    """
    Export recently found arbitrage opportunities to CSV.

    Only what the engine still holds in memory is exported.
    """
    cutoff = datetime.now() - timedelta(hours=hours)
    opportunities = [o for o in engine.history if o.timestamp >= cutoff]

    if min_spread:
        min_minor = round(min_spread * 100)
        opportunities = [o for o in opportunities if o.net_spread_minor >= min_minor]

    if market:
        market = market.lower()
        opportunities = [o for o in opportunities if market in (o.source_market, o.dest_market)]

    csv_content = generate_csv(
        ArbitrageOpportunity.csv_headers(),
        [o.to_csv_row() for o in opportunities],
    )

    filename = f"opportunities_{datetime.now().strftime('%Y%m%d_%H%M%S')}.csv"

    return Response(
        content=csv_content,
        media_type="text/csv",
        headers={
            "Content-Disposition": f"attachment; filename={filename}",
        },
    )
