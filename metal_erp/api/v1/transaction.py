from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import Optional

from metal_erp.core.dependencies import get_db
from metal_erp.models.transaction import TransactionType
from metal_erp.schemas.transaction import TransactionCreate, TransactionResponse, TransactionListResponse
from metal_erp.services.transaction_service import create_transaction, get_all_transactions
from metal_erp.logger_config import logger

router = APIRouter()


@router.get("", response_model=TransactionListResponse)
def get_transactions(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=100),
    type: Optional[TransactionType] = Query(None),
    related_id: Optional[str] = Query(None),
    db: Session = Depends(get_db)
):
    try:
        transactions, total = get_all_transactions(db, skip=skip, limit=limit, type=type, related_id=related_id)
        return TransactionListResponse(
            total=total,
            transactions=[TransactionResponse.model_validate(t) for t in transactions]
        )
    except Exception as e:
        logger.error(f"Error fetching transactions: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch transactions"
        )


@router.post("", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
def create_transaction_route(data: TransactionCreate, db: Session = Depends(get_db)):
    """
    Record a ledger event. related_kind is worked out from related_id when
    omitted and stored with the row.
    """
    try:
        transaction = create_transaction(db, data)
        return TransactionResponse.model_validate(transaction)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception:
        logger.exception("Error creating transaction")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create transaction"
        )
