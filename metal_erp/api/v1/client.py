from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import Optional

from metal_erp.core.dependencies import get_db, get_client_or_404
from metal_erp.models.client import Client, ClientType
from metal_erp.schemas.client import (
    ClientCreate,
    ClientUpdate,
    ClientResponse,
    ClientListResponse,
    RecalculateDebtsResponse,
)
from metal_erp.schemas.debt import ClientDebtResponse, DebtHistoryResponse, UnpaidOrdersResponse
from metal_erp.schemas.repayment import RepaymentCreate, RepaymentResponse
from metal_erp.services.client_service import (
    get_all_clients,
    create_client,
    update_client,
    get_client_debt,
    get_unpaid_orders,
    get_debt_history,
    recalculate_all_client_debts,
)
from metal_erp.services.repayment_service import record_repayment
from metal_erp.logger_config import logger

router = APIRouter()


@router.get("", response_model=ClientListResponse)
def get_clients(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=100),
    search: Optional[str] = Query(None),
    type: Optional[ClientType] = Query(None),
    db: Session = Depends(get_db)
):
    """
    Get all clients with optional search by name, company, phone or INN.
    total_debt is the cached value kept in sync with the ledger.
    """
    try:
        clients, total = get_all_clients(db, skip=skip, limit=limit, search=search, type=type)
        return ClientListResponse(
            total=total,
            clients=[ClientResponse.model_validate(c) for c in clients]
        )
    except Exception as e:
        logger.error(f"Error fetching clients: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch clients"
        )


@router.post("/recalculate-debts", response_model=RecalculateDebtsResponse)
def recalculate_debts(db: Session = Depends(get_db)):
    """Recompute every client's cached debt from orders and transactions."""
    try:
        checked, updated = recalculate_all_client_debts(db)
        return RecalculateDebtsResponse(checked=checked, updated=updated)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception:
        logger.exception("Error recalculating client debts")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to recalculate client debts"
        )


@router.get("/{client_id}", response_model=ClientResponse)
def get_client(client: Client = Depends(get_client_or_404)):
    return ClientResponse.model_validate(client)


@router.post("", response_model=ClientResponse, status_code=status.HTTP_201_CREATED)
def create_client_route(
    client_data: ClientCreate,
    db: Session = Depends(get_db)
):
    """Create a new client."""
    try:
        client = create_client(
            db=db,
            name=client_data.name,
            company_name=client_data.company_name,
            type=client_data.type,
            phone=client_data.phone,
            inn=client_data.inn,
            notes=client_data.notes,
            client_id=client_data.id,
        )
        logger.info(f"Client {client.id} created")
        return ClientResponse.model_validate(client)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except Exception as e:
        logger.error(f"Error creating client: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create client"
        )


@router.put("/{client_id}", response_model=ClientResponse)
def update_client_route(
    client_id: str,
    client_data: ClientUpdate,
    db: Session = Depends(get_db)
):
    """Update client details."""
    try:
        client = update_client(
            db=db,
            client_id=client_id,
            name=client_data.name,
            company_name=client_data.company_name,
            type=client_data.type,
            phone=client_data.phone,
            inn=client_data.inn,
            notes=client_data.notes,
        )
        if not client:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Client not found"
            )
        logger.info(f"Client {client_id} updated")
        return ClientResponse.model_validate(client)
    except HTTPException:
        raise
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except Exception as e:
        logger.error(f"Error updating client: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update client"
        )


# ==================== DEBT ====================

@router.get("/{client_id}/debt", response_model=ClientDebtResponse)
def get_debt(
    client: Client = Depends(get_client_or_404),
    db: Session = Depends(get_db)
):
    """Debt computed from the ledger, next to the cached value."""
    return get_client_debt(db, client)


@router.get("/{client_id}/unpaid-orders", response_model=UnpaidOrdersResponse)
def get_client_unpaid_orders(
    client: Client = Depends(get_client_or_404),
    db: Session = Depends(get_db)
):
    """Open debt documents after FIFO allocation, oldest first."""
    return get_unpaid_orders(db, client)


@router.get("/{client_id}/debt-history", response_model=DebtHistoryResponse)
def get_client_debt_history(
    client: Client = Depends(get_client_or_404),
    db: Session = Depends(get_db)
):
    """Debt ledger with running balance, newest first."""
    return get_debt_history(db, client)


@router.post("/{client_id}/repayments", response_model=RepaymentResponse, status_code=status.HTTP_201_CREATED)
def create_repayment(
    data: RepaymentCreate,
    client: Client = Depends(get_client_or_404),
    db: Session = Depends(get_db)
):
    """
    Record a repayment, single or split across cash/card/bank.
    order_id may target an open order, a debt obligation or the general debt entry.
    """
    try:
        return record_repayment(db, client.id, data)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception:
        logger.exception(f"Error recording repayment for client {client.id}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to record repayment"
        )
