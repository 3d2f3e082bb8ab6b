from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from metal_erp.common.error_handlers import register_error_handlers
from metal_erp.core.config import settings
from metal_erp.api.v1 import account, client, expense, order, repayment, transaction

app = FastAPI(title="Metal ERP Ledger", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

# Register API routers
app.include_router(client.router, prefix="/api/v1/clients", tags=["clients"])
app.include_router(order.router, prefix="/api/v1/orders", tags=["orders"])
app.include_router(
    transaction.router, prefix="/api/v1/transactions", tags=["transactions"])
app.include_router(
    expense.router, prefix="/api/v1/expenses", tags=["expenses"])
app.include_router(
    account.router, prefix="/api/v1/accounts", tags=["accounts"])
app.include_router(
    repayment.router, prefix="/api/v1/repayments", tags=["repayments"])


@app.get("/")
def read_root():
    return {"message": "Welcome to the Metal ERP ledger APIs!"}
