"""
Outsourcing Database Models

A seller delegating part of an order to another freelancer by invitation.
"""

from datetime import datetime
from typing import Optional

from sqlmodel import Field

from app.infrastructure.db.models.base import BaseModel, tz_field


class OutsourceRequest(BaseModel, table=True):
    __tablename__ = "outsource_requests"

    original_order_id: str = Field(foreign_key="orders.id", index=True, max_length=36)
    outsourcer_id: str = Field(foreign_key="users.id", index=True, max_length=36)
    outsourced_to_id: Optional[str] = Field(default=None, foreign_key="users.id", max_length=36)
    category_id: Optional[str] = Field(default=None, max_length=36)
    title: str = Field(max_length=200)
    description: str
    requirements: Optional[str] = Field(default=None)
    amount: int = Field(description="In cents")
    delivery_days: int
    deadline: Optional[datetime] = tz_field()
    status: str = Field(default="open", max_length=20, index=True)
    is_anonymous: bool = Field(default=True)
    assigned_at: Optional[datetime] = tz_field()
    delivered_at: Optional[datetime] = tz_field()
    completed_at: Optional[datetime] = tz_field()


class OutsourceInvitation(BaseModel, table=True):
    __tablename__ = "outsource_invitations"

    request_id: str = Field(foreign_key="outsource_requests.id", index=True, max_length=36)
    invitee_id: str = Field(foreign_key="users.id", index=True, max_length=36)
    message: Optional[str] = Field(default=None)
    status: str = Field(default="pending", max_length=20)
    expires_at: datetime = tz_field(nullable=False)
    responded_at: Optional[datetime] = tz_field()
