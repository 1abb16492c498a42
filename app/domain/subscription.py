"""
Subscription Domain Models

Plans, statuses, pricing and period arithmetic for the subscription
bounded context.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from dateutil.relativedelta import relativedelta
from pydantic import BaseModel, Field


class SubscriptionPlan(str, Enum):
    """Subscription plans."""
    FREE = "free"
    MONTHLY = "monthly"
    ANNUAL = "annual"


class SubscriptionStatus(str, Enum):
    """Subscription lifecycle status."""
    ACTIVE = "active"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    PAST_DUE = "past_due"


# Prices in ZAR cents
PLAN_PRICES = {
    SubscriptionPlan.MONTHLY: 9900,
    SubscriptionPlan.ANNUAL: 99900,
}

PLAN_FEATURES = {
    SubscriptionPlan.FREE: {
        "max_bids": 5,
        "max_services": 1,
        "can_outsource": False,
        "can_shortlist": False,
    },
    SubscriptionPlan.MONTHLY: {
        "max_bids": -1,  # Unlimited
        "max_services": -1,
        "can_outsource": True,
        "can_shortlist": True,
    },
    SubscriptionPlan.ANNUAL: {
        "max_bids": -1,
        "max_services": -1,
        "can_outsource": True,
        "can_shortlist": True,
    },
}

FREE_PLAN_DURATION = relativedelta(years=100)

PRO_REQUIRED_MESSAGE = "Upgrade to Pro to use shortlist and outsourcing features"


def compute_period_end(plan: SubscriptionPlan, start: datetime) -> datetime:
    """
    End of a billing period starting at ``start``.

    Uses calendar arithmetic: Jan 31 + 1 month is the last day of February,
    Feb 29 + 1 year is Feb 28.
    """
    if plan == SubscriptionPlan.MONTHLY:
        return start + relativedelta(months=1)
    if plan == SubscriptionPlan.ANNUAL:
        return start + relativedelta(years=1)
    return start + FREE_PLAN_DURATION


def parse_plan(value: Optional[str]) -> Optional[SubscriptionPlan]:
    """Map a loose plan string (any case) to a paid plan, or None."""
    if not value:
        return None
    try:
        plan = SubscriptionPlan(value.strip().lower())
    except ValueError:
        return None
    return plan if plan != SubscriptionPlan.FREE else None


def is_paid_and_active(
    plan: str,
    status: str,
    period_end: Optional[datetime],
    now: datetime,
) -> bool:
    """Whether a subscription row grants Pro features right now."""
    if plan == SubscriptionPlan.FREE.value:
        return False
    if status != SubscriptionStatus.ACTIVE.value:
        return False
    return period_end is None or period_end > now


def get_max_bids(plan: str) -> int:
    """Bid cap for a plan. -1 means unlimited."""
    return PLAN_FEATURES.get(SubscriptionPlan(plan), {}).get("max_bids", 5)


def get_max_services(plan: str) -> int:
    """Service cap for a plan. -1 means unlimited."""
    return PLAN_FEATURES.get(SubscriptionPlan(plan), {}).get("max_services", 1)


# =============================================================================
# Request/Response DTOs
# =============================================================================

class CreateCheckoutRequest(BaseModel):
    """Request DTO for starting a subscription checkout."""
    plan: SubscriptionPlan = Field(
        default=SubscriptionPlan.MONTHLY,
        description="Paid plan to purchase"
    )


class ConfirmSubscriptionRequest(BaseModel):
    """Request DTO for completing a mock checkout."""
    plan: SubscriptionPlan
    reference: str = Field(..., min_length=1, max_length=100, description="Checkout reference")


class SubscriptionView(BaseModel):
    """Current subscription with derived fields."""
    plan: SubscriptionPlan
    status: SubscriptionStatus
    bids_used: int = 0
    services_used: int = 0
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    days_remaining: Optional[int] = Field(None, description="Days until period end")
    can_upgrade: bool = Field(description="Whether a paid plan can be purchased")
    can_cancel: bool = Field(description="Whether the subscription can be cancelled")


class UsageView(BaseModel):
    """Usage against plan limits. -1 limit means unlimited."""
    plan: SubscriptionPlan
    bids_used: int
    bids_limit: int
    services_used: int
    services_limit: int
    can_outsource: bool
    can_shortlist: bool
