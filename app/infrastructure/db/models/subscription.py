"""
Subscription Database Model

SQLModel table for subscription data persistence.
"""

from datetime import datetime
from typing import Optional

from sqlmodel import Field

from app.infrastructure.db.models.base import BaseModel, tz_field


class Subscription(BaseModel, table=True):
    """
    Subscription table. At most one row per user (unique user_id).

    Maps to the 'subscriptions' table in PostgreSQL.
    """

    __tablename__ = "subscriptions"

    user_id: str = Field(foreign_key="users.id", unique=True, index=True, max_length=36)

    plan: str = Field(default="free", max_length=20)
    status: str = Field(default="active", max_length=20)

    # Usage tracking
    bids_used: int = Field(default=0)
    services_used: int = Field(default=0)

    # Billing period dates
    current_period_start: Optional[datetime] = tz_field()
    current_period_end: Optional[datetime] = tz_field()
    cancelled_at: Optional[datetime] = tz_field()

    # Provider transaction id of the payment that last activated the plan
    payment_reference: Optional[str] = Field(default=None, max_length=255)
