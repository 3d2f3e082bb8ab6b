from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import Optional

from metal_erp.core.dependencies import get_db
from metal_erp.models.common import PaymentMethod, PaymentStatus
from metal_erp.schemas.order import OrderCreate, OrderResponse, OrderListResponse
from metal_erp.services.client_service import get_client_by_id
from metal_erp.services.order_service import create_order, get_all_orders, get_order_by_id
from metal_erp.logger_config import logger

router = APIRouter()


@router.get("", response_model=OrderListResponse)
def get_orders(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=100),
    client_id: Optional[str] = Query(None),
    payment_method: Optional[PaymentMethod] = Query(None),
    payment_status: Optional[PaymentStatus] = Query(None),
    db: Session = Depends(get_db)
):
    """Orders newest first; client_id also matches orders sold under the client's name."""
    client = None
    if client_id:
        client = get_client_by_id(db, client_id)
        if not client:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")
    try:
        orders, total = get_all_orders(
            db,
            skip=skip,
            limit=limit,
            client=client,
            payment_method=payment_method,
            payment_status=payment_status,
        )
        return OrderListResponse(
            total=total,
            orders=[OrderResponse.model_validate(o) for o in orders]
        )
    except Exception as e:
        logger.error(f"Error fetching orders: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch orders"
        )


@router.get("/{order_id}", response_model=OrderResponse)
def get_order(order_id: str, db: Session = Depends(get_db)):
    order = get_order_by_id(db, order_id)
    if not order:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Order not found"
        )
    return OrderResponse.model_validate(order)


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
def create_order_route(data: OrderCreate, db: Session = Depends(get_db)):
    """Record a sale. Debt sales show up in the client's debt immediately."""
    try:
        order = create_order(db, data)
        return OrderResponse.model_validate(order)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception:
        logger.exception("Error creating order")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create order"
        )
