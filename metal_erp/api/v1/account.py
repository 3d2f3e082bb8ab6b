from decimal import Decimal
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import Optional

from metal_erp.core.dependencies import get_db
from metal_erp.schemas.balance import AccountBalancesResponse
from metal_erp.services.account_service import get_account_balances
from metal_erp.logger_config import logger

router = APIRouter()


@router.get("/balances", response_model=AccountBalancesResponse)
def get_balances(
    exchange_rate: Optional[Decimal] = Query(None, gt=0),
    db: Session = Depends(get_db)
):
    """
    Cash USD, cash UZS, bank UZS and card UZS balances.
    exchange_rate defaults to the configured rate and is only used where a
    record has no plausible rate of its own.
    """
    try:
        return get_account_balances(db, exchange_rate=exchange_rate)
    except Exception as e:
        logger.error(f"Error computing account balances: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to compute account balances"
        )
