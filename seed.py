from metal_erp.core.database import SessionLocal
from metal_erp.models.client import Client, ClientType
from metal_erp.models.common import Currency, PaymentMethod
from metal_erp.models.expense import Expense
from metal_erp.models.order import Order, OrderItem
from metal_erp.models.transaction import Transaction, TransactionType
from metal_erp.schemas.expense import ExpenseCreate
from metal_erp.schemas.order import OrderCreate, OrderItemCreate
from metal_erp.schemas.repayment import RepaymentCreate
from metal_erp.services.client_service import create_client, recalculate_all_client_debts
from metal_erp.services.expense_service import create_expense
from metal_erp.services.order_service import create_order
from metal_erp.services.repayment_service import record_repayment

from faker import Faker
from decimal import Decimal
import random
from datetime import datetime, timedelta

fake = Faker()
db = SessionLocal()

PRODUCTS = ["Armature A500", "Sheet 2mm", "Pipe 57x3.5", "Angle 50x50", "Channel 10P", "Beam 20B"]
UNITS = ["t", "m", "pcs"]
EXPENSE_CATEGORIES = ["Rent", "Fuel", "Salary", "Utilities", "Transport"]
RATE = Decimal("12800")


def _money(low, high) -> Decimal:
    return Decimal(str(round(random.uniform(low, high), 2)))


def _days_ago(max_days: int) -> datetime:
    return datetime.utcnow() - timedelta(days=random.randint(0, max_days), hours=random.randint(0, 23))


try:
    print("🔄 Clearing existing data...")
    db.query(Transaction).delete()
    db.query(OrderItem).delete()
    db.query(Order).delete()
    db.query(Expense).delete()
    db.query(Client).delete()
    db.commit()
    print("✅ Data cleared.")

    print("🔄 Creating clients...")
    clients = []
    for _ in range(random.randint(15, 25)):
        legal = random.choice([True, False])
        clients.append(create_client(
            db,
            name=fake.name(),
            company_name=fake.company() if legal else None,
            type=ClientType.legal if legal else ClientType.individual,
            phone=''.join(filter(str.isdigit, fake.phone_number()))[:20],
            inn=str(random.randint(100000000, 999999999)) if legal else None,
        ))
    print(f"✅ Seeded {len(clients)} clients")

    print("🔄 Creating orders...")
    orders = []
    for _ in range(60):
        client = random.choice(clients)
        method = random.choice(list(PaymentMethod))
        items = [
            OrderItemCreate(
                product_name=random.choice(PRODUCTS),
                unit=random.choice(UNITS),
                quantity=Decimal(random.randint(1, 20)),
                price_at_sale=_money(20, 400),
            )
            for _ in range(random.randint(1, 4))
        ]
        order = create_order(db, OrderCreate(
            date=_days_ago(120),
            customer_name=client.name,
            client_id=client.id if random.random() < 0.8 else None,
            seller_name=fake.first_name(),
            items=items,
            exchange_rate=RATE,
            payment_method=method,
            payment_currency=Currency.UZS if method == PaymentMethod.cash and random.random() < 0.3 else None,
            payment_due_date=datetime.utcnow() + timedelta(days=30) if method == PaymentMethod.debt else None,
        ))
        orders.append(order)
        print(f"📟 Order {order.id} for {client.name} via {method.value}")
    print(f"✅ Seeded {len(orders)} orders")

    print("🔄 Creating repayments...")
    repayments = 0
    debt_orders = [o for o in orders if o.payment_method == PaymentMethod.debt and o.client_id]
    for order in debt_orders:
        if random.choice([True, False]):
            continue
        share = Decimal(str(random.choice([0.25, 0.5, 1])))
        amount = (order.total_amount * share).quantize(Decimal("0.01"))
        request = RepaymentCreate(
            order_id=order.id if random.random() < 0.5 else None,
            amount=amount,
            method=random.choice(["cash", "bank", "card"]),
            exchange_rate=RATE,
        )
        record_repayment(db, order.client_id, request)
        repayments += 1
    print(f"✅ Seeded {repayments} repayments")

    print("🔄 Creating expenses...")
    for _ in range(25):
        create_expense(db, ExpenseCreate(
            date=_days_ago(90),
            description=fake.sentence(nb_words=4),
            category=random.choice(EXPENSE_CATEGORIES),
            amount=_money(10, 800),
            currency=random.choice(list(Currency)),
            exchange_rate=RATE,
            payment_method=random.choice([PaymentMethod.cash, PaymentMethod.bank, PaymentMethod.card]),
        ))
    print("✅ Seeded 25 expenses")

    checked, updated = recalculate_all_client_debts(db)
    print(f"✅ Debt caches checked for {checked} clients ({updated} corrected)")

except Exception as e:
    db.rollback()
    print(f"❌ Seeding failed: {e}")
    raise
finally:
    db.close()
