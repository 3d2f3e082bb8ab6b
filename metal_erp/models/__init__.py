# metal_erp/models/__init__.py
from .common import Currency, PaymentMethod, PaymentStatus
from .client import Client, ClientType
from .order import Order, OrderItem
from .transaction import Transaction, TransactionType, ReferenceKind
from .expense import Expense
