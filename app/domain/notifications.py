"""
Notification Domain Models
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field


class NotificationType(str, Enum):
    """Kinds of user notifications."""
    ORDER_CREATED = "order_created"
    ORDER_DELIVERED = "order_delivered"
    ORDER_COMPLETED = "order_completed"
    ORDER_CANCELLED = "order_cancelled"
    PAYMENT_RECEIVED = "payment_received"
    NEW_MESSAGE = "new_message"
    NEW_BID = "new_bid"
    BID_ACCEPTED = "bid_accepted"
    REVIEW_RECEIVED = "review_received"
    DISPUTE_OPENED = "dispute_opened"
    DISPUTE_RESOLVED = "dispute_resolved"
    VERIFICATION_APPROVED = "verification_approved"
    VERIFICATION_REJECTED = "verification_rejected"
    SUBSCRIPTION_EXPIRING = "subscription_expiring"
    SYSTEM = "system"


class NotificationAction(str, Enum):
    MARK_READ = "mark_read"
    MARK_ALL_READ = "mark_all_read"


class NotificationCreate(BaseModel):
    """Input to the notification emitter."""
    user_id: str
    type: NotificationType
    title: str = Field(..., max_length=200)
    message: str
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    send_email: bool = False
    email_data: Dict[str, Any] = Field(default_factory=dict)


class NotificationRead(BaseModel):
    """Notification as returned by the read API."""
    id: str
    type: str
    title: str
    message: str
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime


class NotificationActionRequest(BaseModel):
    """POST body of the notification API."""
    action: Optional[str] = None
    notification_id: Optional[str] = Field(None, alias="notificationId")

    model_config = {"populate_by_name": True}
