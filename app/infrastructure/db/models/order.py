"""
Order Database Models

Escrow-backed orders and their funding milestones.
"""

from datetime import datetime
from typing import Optional

from sqlmodel import Field

from app.infrastructure.db.models.base import BaseModel, tz_field


class Order(BaseModel, table=True):
    """
    Purchase of a service tier or an awarded project.

    Status moves to in_progress only when escrow funding is confirmed.
    """

    __tablename__ = "orders"

    order_number: str = Field(max_length=40, unique=True, index=True)
    buyer_id: str = Field(foreign_key="users.id", index=True, max_length=36)
    seller_id: str = Field(foreign_key="users.id", index=True, max_length=36)
    order_type: str = Field(default="service", max_length=20)

    service_id: Optional[str] = Field(default=None, max_length=36)
    service_tier: Optional[str] = Field(default=None, max_length=20)
    project_id: Optional[str] = Field(default=None, max_length=36)
    bid_id: Optional[str] = Field(default=None, max_length=36)
    requirements: Optional[str] = Field(default=None)

    # Money, in cents
    subtotal: int
    buyer_fee: int = Field(default=0)
    seller_fee: int = Field(default=0)
    total_amount: int
    seller_earnings: int
    currency: str = Field(default="ZAR", max_length=3)

    delivery_days: int = Field(default=7)
    delivery_deadline: Optional[datetime] = tz_field()
    revisions_allowed: int = Field(default=2)
    revisions_used: int = Field(default=0)
    status: str = Field(default="pending_payment", max_length=30, index=True)
    delivery_message: Optional[str] = Field(default=None)
    revision_reason: Optional[str] = Field(default=None)
    cancellation_reason: Optional[str] = Field(default=None)
    cancelled_by: Optional[str] = Field(default=None, max_length=36)
    delivered_at: Optional[datetime] = tz_field()
    completed_at: Optional[datetime] = tz_field()
    buyer_has_reviewed: bool = Field(default=False)
    seller_has_reviewed: bool = Field(default=False)


class Milestone(BaseModel, table=True):
    __tablename__ = "milestones"

    order_id: str = Field(foreign_key="orders.id", index=True, max_length=36)
    title: str = Field(max_length=200)
    description: Optional[str] = Field(default=None)
    amount: int = Field(description="In cents")
    sort_order: int = Field(default=1)
    due_date: Optional[datetime] = tz_field()
    status: str = Field(default="pending", max_length=20)
    funded_at: Optional[datetime] = tz_field()
    submitted_at: Optional[datetime] = tz_field()
    released_at: Optional[datetime] = tz_field()
