from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from pos_engine.core.logging import get_logger
from pos_engine.core.schemas import ClosePreviewIn
from pos_engine.db import get_db
from pos_engine.services.shift_sales import (
    BackendQueryError,
    ShiftSalesAggregator,
    fetch_shift_sales,
    make_sales_client,
)

router = APIRouter(prefix="/shifts", tags=["shifts"])
log = get_logger(__name__)


def get_sales_aggregator(db: Session = Depends(get_db)) -> ShiftSalesAggregator:
    return ShiftSalesAggregator(make_sales_client(db))


@router.get("/{shift_id}/sales")
async def shift_sales(shift_id: int, agg: ShiftSalesAggregator = Depends(get_sales_aggregator)):
    try:
        sales = await fetch_shift_sales(agg, shift_id)
    except BackendQueryError:
        raise HTTPException(status_code=502, detail="backend_unavailable")
    return {"shift_id": shift_id, **sales.model_dump(), "total": sales.total}


@router.post("/{shift_id}/close-preview")
def close_preview(
    shift_id: int,
    body: ClosePreviewIn,
    agg: ShiftSalesAggregator = Depends(get_sales_aggregator),
):
    try:
        summary = agg.close_summary(
            shift_id,
            opening_balance=body.opening_balance,
            closing_balance=body.closing_balance,
            cash_refunds=body.cash_refunds,
        )
    except BackendQueryError:
        raise HTTPException(status_code=502, detail="backend_unavailable")
    if summary.discrepancy != 0:
        log.info("shift_cash_discrepancy", shift_id=shift_id, discrepancy=summary.discrepancy)
    return summary.model_dump()
