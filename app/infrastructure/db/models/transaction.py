"""
Transaction Database Model

Append-only payment ledger. provider_reference is unique and serves as the
idempotency key for gateway notifications.
"""

from datetime import datetime
from typing import Optional

from sqlmodel import Field

from app.infrastructure.db.models.base import BaseModel, tz_field


class Transaction(BaseModel, table=True):
    __tablename__ = "transactions"

    order_id: Optional[str] = Field(default=None, foreign_key="orders.id", index=True, max_length=36)
    milestone_id: Optional[str] = Field(default=None, max_length=36)
    subscription_id: Optional[str] = Field(default=None, max_length=36)
    user_id: str = Field(foreign_key="users.id", index=True, max_length=36)

    type: str = Field(max_length=20)
    amount: int = Field(description="In cents")
    currency: str = Field(default="ZAR", max_length=3)

    provider: str = Field(max_length=20)
    provider_reference: Optional[str] = Field(default=None, max_length=255, unique=True, index=True)
    provider_transaction_id: Optional[str] = Field(default=None, max_length=255)

    status: str = Field(default="pending", max_length=20)
    error_message: Optional[str] = Field(default=None)
    completed_at: Optional[datetime] = tz_field()
