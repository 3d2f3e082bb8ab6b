from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session

from metal_erp.core.dependencies import get_db
from metal_erp.schemas.repayment import RepaymentStatsResponse, StatsRange
from metal_erp.services.repayment_service import get_repayment_stats
from metal_erp.logger_config import logger

router = APIRouter()


@router.get("/stats", response_model=RepaymentStatsResponse)
def repayment_statistics(
    range: StatsRange = Query("month"),
    db: Session = Depends(get_db)
):
    """Client repayments for the last week, this month, this year or all time."""
    try:
        return get_repayment_stats(db, range=range)
    except Exception as e:
        logger.error(f"Error computing repayment stats: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to compute repayment statistics"
        )
