"""
USD/UZS conversion rules and the settlement table.

Card and bank rails always settle in UZS; cash settles in whatever currency
was handed over. Debt and mixed sales move no money by themselves (mixed
sales are paid through separate client_payment transactions).
"""
import enum
from decimal import Decimal
from typing import Callable, List, Optional

from metal_erp.core.config import settings
from metal_erp.logger_config import logger
from metal_erp.models.common import Currency, PaymentMethod
from metal_erp.schemas.balance import Correction
from metal_erp.schemas.records import TransactionRecord
from metal_erp.utils.money import ZERO, safe_rate, to_decimal


class Bucket(str, enum.Enum):
    cash_usd = "cash_usd"
    cash_uzs = "cash_uzs"
    bank_uzs = "bank_uzs"
    card_uzs = "card_uzs"


# Method -> bucket. Cash is resolved by currency, None means no cash movement.
SETTLEMENT_BUCKETS = {
    PaymentMethod.bank: Bucket.bank_uzs,
    PaymentMethod.card: Bucket.card_uzs,
    PaymentMethod.cash: None,
    PaymentMethod.debt: None,
    PaymentMethod.mixed: None,
}

CASH_BUCKETS = {
    Currency.USD: Bucket.cash_usd,
    Currency.UZS: Bucket.cash_uzs,
}

SETTLES_IN_UZS = {Bucket.cash_uzs, Bucket.bank_uzs, Bucket.card_uzs}


def settlement_bucket(method: PaymentMethod, currency: Optional[Currency]) -> Optional[Bucket]:
    """Bucket a movement lands in, or None when the method moves no money."""
    if method in (PaymentMethod.bank, PaymentMethod.card):
        return SETTLEMENT_BUCKETS[method]
    if method == PaymentMethod.cash:
        return CASH_BUCKETS.get(currency or Currency.USD, Bucket.cash_usd)
    return None


def tx_to_usd(tx: TransactionRecord) -> Decimal:
    """
    USD value of a transaction at its own snapshot rate.
    UZS without a stored rate is taken as already USD (legacy rows).
    """
    amount = tx.amount
    if tx.currency == Currency.UZS and tx.exchange_rate:
        return amount / tx.exchange_rate
    return amount


def validate_usd(
    amount,
    rate,
    record_id: str = "",
    record_type: str = "order",
    on_correction: Optional[Callable[[Correction], None]] = None,
) -> Decimal:
    """
    Guard against UZS figures typed into USD fields.

    Above USD_CORRECTION_THRESHOLD the amount is divided by the rate; the
    converted value is used only if it is itself below the threshold.
    Corrections are reported through on_correction, never silently trusted.
    """
    value = to_decimal(amount)
    r = safe_rate(rate)

    if value > settings.USD_CORRECTION_THRESHOLD:
        possible_usd = value / r
        if possible_usd <= settings.USD_CORRECTION_THRESHOLD:
            logger.warning(
                f"Auto-correction on {record_type} {record_id}: {value} -> {possible_usd:.2f} USD (assumed UZS entry)"
            )
            if on_correction is not None:
                on_correction(Correction(
                    id=record_id,
                    type=record_type,
                    original_amount=value,
                    corrected_amount=possible_usd,
                    reason="Auto-corrected UZS entry in USD field",
                ))
            return possible_usd

    if value > settings.USD_SUSPICION_THRESHOLD:
        logger.warning(f"Suspiciously large USD amount on {record_type} {record_id}: {value}")

    return value


def amount_in_bucket(
    amount: Decimal,
    currency: Optional[Currency],
    bucket: Bucket,
    rate: Decimal,
    record_id: str,
    record_type: str,
    corrections: List[Correction],
) -> Decimal:
    """Express a movement in its bucket's currency."""
    if bucket == Bucket.cash_usd:
        return validate_usd(amount, rate, record_id, record_type, corrections.append)
    if bucket in SETTLES_IN_UZS and currency == Currency.USD:
        return amount * rate
    return amount if amount is not None else ZERO
