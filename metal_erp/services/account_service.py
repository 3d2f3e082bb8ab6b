from sqlalchemy.orm import Session

from metal_erp.schemas.balance import AccountBalancesResponse
from metal_erp.services.balance_service import account_balances
from metal_erp.services.ledger import load_expenses, load_orders, load_transactions


def get_account_balances(db: Session, exchange_rate=None) -> AccountBalancesResponse:
    """Balances of the four settlement accounts over the whole stored log."""
    return account_balances(
        load_orders(db),
        load_expenses(db),
        load_transactions(db),
        exchange_rate=exchange_rate,
    )
