"""
Payment Domain Models

Provider-agnostic payment shapes shared by the gateway adapters and the
webhook reconciliation flow. All amounts are integer ZAR cents.
"""

import secrets
import string
import time
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


CURRENCY = "ZAR"
COUNTRY_CODE = "ZA"

BUYER_FEE_RATE = Decimal("0.03")
SELLER_FEE_RATE = Decimal("0.08")

MIN_PAYMENT_AMOUNT = 5000  # R50
MAX_PAYMENT_AMOUNT = 100_000_000  # R1,000,000

SUBSCRIPTION_PREFIX = "SUB-"
ORDER_PREFIX = "ORD-"
# Ledger key suffix for a full-order payment without a provider reference
ORDER_KEY_SUFFIX = "order"


class PaymentProvider(str, Enum):
    """Supported payment gateways."""
    OZOW = "ozow"
    PAYFAST = "payfast"


class PaymentStatus(str, Enum):
    """Normalized gateway outcome."""
    SUCCESS = "success"
    PENDING = "pending"
    FAILED = "failed"
    CANCELLED = "cancelled"


class PaymentKind(str, Enum):
    """What a webhook settles. Decided once by ``classify_payment``."""
    SUBSCRIPTION = "subscription"
    ESCROW_FUNDING = "escrow_funding"
    UNRECOGNIZED = "unrecognized"


class PaymentRequest(BaseModel):
    """
    Outbound payment initiation.

    Order payments carry ``order_id``/``milestone_id``; subscription
    checkouts carry ``user_id``/``plan``. Both travel to the gateway in its
    two pass-through fields and come back in the notification.
    """
    reference: str
    amount: int = Field(..., gt=0, description="Amount in cents")
    description: str
    buyer_email: str
    buyer_name: Optional[str] = None
    order_id: Optional[str] = None
    milestone_id: Optional[str] = None
    user_id: Optional[str] = None
    plan: Optional[str] = None

    def passthrough(self) -> tuple[str, str]:
        """Values for the gateway's first and second custom fields."""
        first = self.order_id or self.user_id or ""
        second = self.milestone_id or self.plan or ""
        return first, second


class PaymentResult(BaseModel):
    """Outcome of an initiation call."""
    success: bool
    redirect_url: Optional[str] = None
    transaction_id: Optional[str] = None
    error: Optional[str] = None


class WebhookVerification(BaseModel):
    """Result of an authenticity check. Fails closed."""
    valid: bool
    reason: Optional[str] = None


class WebhookNotification(BaseModel):
    """Gateway notification normalized into a common shape."""
    provider: PaymentProvider
    reference: str = ""
    transaction_id: str = ""
    status: PaymentStatus = PaymentStatus.FAILED
    amount: int = Field(0, description="Amount in cents")
    order_id: Optional[str] = None
    milestone_id: Optional[str] = None
    custom_1: Optional[str] = None
    custom_2: Optional[str] = None
    message: Optional[str] = None
    raw: Dict[str, Any] = Field(default_factory=dict)

    @property
    def idempotency_key(self) -> Optional[str]:
        """
        Ledger key for the payment.

        Provider reference, else the gateway transaction id, else a key built
        from the funded order and milestone. None when nothing identifies the
        payment; an empty string is never a key.
        """
        if self.reference or self.transaction_id:
            return self.reference or self.transaction_id
        if self.order_id:
            return f"{self.provider.value}:{self.order_id}:{self.milestone_id or ORDER_KEY_SUFFIX}"
        return None


class FeeBreakdown(BaseModel):
    buyer_fee: int
    seller_fee: int
    buyer_total: int
    seller_receives: int


def classify_payment(notification: WebhookNotification) -> PaymentKind:
    """
    Decide which settlement a notification belongs to.

    ``SUB-`` references are subscriptions even when a pass-through value is
    present, because subscription checkouts reuse the first custom field for
    the user id.
    """
    reference = (notification.reference or "").strip()
    if reference.upper().startswith(SUBSCRIPTION_PREFIX):
        return PaymentKind.SUBSCRIPTION
    if reference.upper().startswith(ORDER_PREFIX) or notification.order_id:
        return PaymentKind.ESCROW_FUNDING
    return PaymentKind.UNRECOGNIZED


def _round_cents(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def calculate_fees(subtotal: int) -> FeeBreakdown:
    """Buyer pays 3% on top; seller gives up 8%."""
    gross = Decimal(subtotal)
    buyer_fee = _round_cents(gross * BUYER_FEE_RATE)
    seller_fee = _round_cents(gross * SELLER_FEE_RATE)
    return FeeBreakdown(
        buyer_fee=buyer_fee,
        seller_fee=seller_fee,
        buyer_total=subtotal + buyer_fee,
        seller_receives=subtotal - seller_fee,
    )


def cents_to_rands(amount: int) -> str:
    """Format cents as a two-decimal rand string ("99.00")."""
    return str((Decimal(amount) / 100).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def rands_to_cents(value: Optional[str]) -> int:
    """Parse a rand amount string into cents. Malformed input yields 0."""
    try:
        return _round_cents(Decimal((value or "0").strip()) * 100)
    except (ArithmeticError, ValueError):
        return 0


def _base36(number: int) -> str:
    alphabet = string.digits + string.ascii_uppercase
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(alphabet[rem])
    return "".join(reversed(digits))


def _random_suffix(length: int = 4) -> str:
    alphabet = string.digits + string.ascii_uppercase
    return "".join(secrets.choice(alphabet) for _ in range(length))


def generate_payment_reference() -> str:
    """Order payment reference: ORD-{base36 millis}-{4 random}."""
    return f"{ORDER_PREFIX}{_base36(int(time.time() * 1000))}-{_random_suffix()}"


def generate_order_number() -> str:
    """Human-facing order number: ZOM-{base36 millis}-{4 random}."""
    return f"ZOM-{_base36(int(time.time() * 1000))}-{_random_suffix()}"


def generate_subscription_reference(plan: str, user_id: str) -> str:
    """Subscription checkout reference: SUB-{PLAN}-{millis}-{user[:8]}."""
    return f"{SUBSCRIPTION_PREFIX}{plan.upper()}-{int(time.time() * 1000)}-{user_id[:8]}"


def plan_from_reference(reference: str) -> Optional[str]:
    """Extract the plan segment from a SUB-{PLAN}-... reference."""
    parts = reference.split("-")
    if len(parts) >= 3 and parts[0].upper() == "SUB":
        return parts[1].lower()
    return None
