"""
Messaging Database Models

Two-party conversations and their messages.
"""

from datetime import datetime
from typing import Optional

from sqlmodel import Field

from app.infrastructure.db.models.base import BaseModel, tz_field


class Conversation(BaseModel, table=True):
    __tablename__ = "conversations"

    participant1_id: str = Field(foreign_key="users.id", index=True, max_length=36)
    participant2_id: str = Field(foreign_key="users.id", index=True, max_length=36)
    order_id: Optional[str] = Field(default=None, max_length=36)
    last_message_at: Optional[datetime] = tz_field()


class Message(BaseModel, table=True):
    __tablename__ = "messages"

    conversation_id: str = Field(foreign_key="conversations.id", index=True, max_length=36)
    sender_id: str = Field(foreign_key="users.id", max_length=36)
    content: str
    is_read: bool = Field(default=False)
    read_at: Optional[datetime] = tz_field()
