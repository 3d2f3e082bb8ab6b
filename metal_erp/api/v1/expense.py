from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import Optional

from metal_erp.core.dependencies import get_db
from metal_erp.schemas.expense import ExpenseCreate, ExpenseResponse, ExpenseListResponse
from metal_erp.services.expense_service import create_expense, get_all_expenses
from metal_erp.logger_config import logger

router = APIRouter()


@router.post("", response_model=ExpenseResponse, status_code=status.HTTP_201_CREATED)
def create_single_expense(data: ExpenseCreate, db: Session = Depends(get_db)):
    """Create a single expense; date defaults to now if not provided."""
    try:
        expense = create_expense(db, data)
        return ExpenseResponse.model_validate(expense)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception:
        logger.exception("Error creating expense")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create expense",
        )


@router.get("", response_model=ExpenseListResponse)
def list_expenses(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    category: Optional[str] = Query(None),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    db: Session = Depends(get_db),
):
    try:
        expenses, total = get_all_expenses(
            db, skip=skip, limit=limit, category=category, date_from=date_from, date_to=date_to
        )
        return ExpenseListResponse(
            total=total,
            expenses=[ExpenseResponse.model_validate(e) for e in expenses],
        )
    except Exception:
        logger.exception("Error fetching expenses")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch expenses",
        )
