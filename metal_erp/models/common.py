import enum
import secrets
import string


class Currency(str, enum.Enum):
    USD = "USD"
    UZS = "UZS"


class PaymentMethod(str, enum.Enum):
    cash = "cash"
    bank = "bank"
    card = "card"
    debt = "debt"
    mixed = "mixed"


class PaymentStatus(str, enum.Enum):
    paid = "paid"
    unpaid = "unpaid"
    partial = "partial"


def generate_custom_id(prefix: str, length: int = 8) -> str:
    random_part = ''.join(secrets.choice(string.ascii_uppercase + string.digits)
                          for _ in range(length))
    return f"{prefix}-{random_part}"
