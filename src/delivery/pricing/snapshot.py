"""PricingSnapshot: freeze the current commercial terms for a new order.

Business rule: tax (GST) is charged on the delivery charge only, not on the
fuel subtotal.

    subtotal = quantity * rate_per_liter
    tax      = delivery_charge * tax_rate
    total    = subtotal + delivery_charge + tax

All arithmetic is fixed-point ``Decimal``; every amount is stored as a
canonical two-place string rounded half-up.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from delivery.pricing.setting import SystemSetting

logger = structlog.get_logger(__name__)

CENTS = Decimal("0.01")

FALLBACK_RATE_PER_LITER = Decimal("70.50")
FALLBACK_DELIVERY_CHARGES = Decimal("300")
FALLBACK_GST_RATE = Decimal("0.18")


def to_money(value) -> str:
    """Canonical two-decimal string for an amount."""
    return str(Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class PricingTerms:
    rate_per_liter: Decimal
    delivery_charges: Decimal
    gst_rate: Decimal


@dataclass(frozen=True)
class PricingSnapshot:
    quantity: int
    rate_per_liter: str
    subtotal: str
    delivery_charges: str
    gst: str
    total_amount: str

    @classmethod
    def compute(cls, quantity: int, terms: PricingTerms) -> "PricingSnapshot":
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be a positive whole number of liters"]})

        subtotal = Decimal(quantity) * terms.rate_per_liter
        gst = terms.delivery_charges * terms.gst_rate
        total = subtotal + terms.delivery_charges + gst

        return cls(
            quantity=quantity,
            rate_per_liter=to_money(terms.rate_per_liter),
            subtotal=to_money(subtotal),
            delivery_charges=to_money(terms.delivery_charges),
            gst=to_money(gst),
            total_amount=to_money(total),
        )

    def to_dict(self) -> dict:
        return {
            "rate_per_liter": self.rate_per_liter,
            "subtotal": self.subtotal,
            "delivery_charges": self.delivery_charges,
            "gst": self.gst,
            "total_amount": self.total_amount,
        }


def setting_decimal(key: str, fallback: Decimal) -> Decimal:
    """Read a numeric setting, falling back when it is missing or malformed."""
    repo = current_domain.repository_for(SystemSetting)
    try:
        setting = repo.get(key)
    except ObjectNotFoundError:
        logger.warning("Setting missing, using fallback", key=key, fallback=str(fallback))
        return fallback

    try:
        value = Decimal(setting.value)
    except InvalidOperation:
        logger.warning("Setting unparsable, using fallback", key=key, fallback=str(fallback))
        return fallback
    if not value.is_finite() or value < 0:
        logger.warning("Setting out of range, using fallback", key=key, fallback=str(fallback))
        return fallback
    return value


def current_terms() -> PricingTerms:
    return PricingTerms(
        rate_per_liter=setting_decimal("rate_per_liter", FALLBACK_RATE_PER_LITER),
        delivery_charges=setting_decimal("delivery_charges", FALLBACK_DELIVERY_CHARGES),
        gst_rate=setting_decimal("gst_rate", FALLBACK_GST_RATE),
    )


def snapshot(quantity: int) -> PricingSnapshot:
    """Price ``quantity`` liters at the currently configured terms."""
    return PricingSnapshot.compute(quantity, current_terms())
