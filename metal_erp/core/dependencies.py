from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from metal_erp.core.database import SessionLocal
from metal_erp.models.client import Client


def get_db():
    """Dependency to get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_client_or_404(client_id: str, db: Session = Depends(get_db)) -> Client:
    """
    Resolve the {client_id} path parameter to a Client.
    Raises 404 if the client does not exist.
    """
    client = db.query(Client).filter(Client.id == client_id).first()
    if client is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Client not found"
        )
    return client
