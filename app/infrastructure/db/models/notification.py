"""
Notification Database Model
"""

from datetime import datetime
from typing import Optional

from sqlmodel import Field

from app.infrastructure.db.models.base import BaseModel, tz_field


class Notification(BaseModel, table=True):
    __tablename__ = "notifications"

    user_id: str = Field(foreign_key="users.id", index=True, max_length=36)
    type: str = Field(max_length=40)
    title: str = Field(max_length=200)
    message: str
    entity_type: Optional[str] = Field(default=None, max_length=40)
    entity_id: Optional[str] = Field(default=None, max_length=36)
    is_read: bool = Field(default=False, index=True)
    read_at: Optional[datetime] = tz_field()
    email_sent: bool = Field(default=False)
