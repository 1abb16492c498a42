"""
Moderation Database Models

Order disputes and the admin audit trail.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import Column, JSON
from sqlmodel import Field

from app.infrastructure.db.models.base import BaseModel, tz_field


class Dispute(BaseModel, table=True):
    __tablename__ = "disputes"

    order_id: str = Field(foreign_key="orders.id", index=True, max_length=36)
    raised_by_id: str = Field(foreign_key="users.id", max_length=36)
    against_id: str = Field(foreign_key="users.id", max_length=36)
    category: str = Field(max_length=40)
    title: str = Field(max_length=200)
    description: str
    status: str = Field(default="open", max_length=20, index=True)
    resolution: Optional[str] = Field(default=None, max_length=20)
    resolution_notes: Optional[str] = Field(default=None)
    resolution_amount: Optional[int] = Field(default=None)
    resolved_by: Optional[str] = Field(default=None, max_length=36)
    resolved_at: Optional[datetime] = tz_field()


class AuditLog(BaseModel, table=True):
    """Admin action record. Written once, never updated."""

    __tablename__ = "audit_logs"

    actor_id: str = Field(max_length=36, index=True)
    actor_email: str = Field(max_length=255)
    action: str = Field(max_length=60)
    entity_type: str = Field(max_length=40)
    entity_id: str = Field(max_length=36)
    changes: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
    details: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column("metadata", JSON))
