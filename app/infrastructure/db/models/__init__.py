"""
SQLModel ORM Models for Zomieks

Exports all database models for Alembic autogenerate and application use.
Import models here to register them with SQLModel.metadata.
"""

from app.infrastructure.db.models.base import (
    BaseModel,
    IDMixin,
    TimestampMixin,
    new_id,
    utcnow,
)
from app.infrastructure.db.models.user import (
    User,
    UserProfile,
    UserVerification,
    EmailVerificationToken,
    PasswordResetToken,
)
from app.infrastructure.db.models.subscription import Subscription
from app.infrastructure.db.models.catalog import Category, Service
from app.infrastructure.db.models.project import Project, Bid
from app.infrastructure.db.models.order import Order, Milestone
from app.infrastructure.db.models.transaction import Transaction
from app.infrastructure.db.models.notification import Notification
from app.infrastructure.db.models.messaging import Conversation, Message
from app.infrastructure.db.models.shortlist import ShortlistEntry
from app.infrastructure.db.models.review import Review
from app.infrastructure.db.models.outsourcing import OutsourceRequest, OutsourceInvitation
from app.infrastructure.db.models.moderation import Dispute, AuditLog


__all__ = [
    # Base
    "BaseModel",
    "IDMixin",
    "TimestampMixin",
    "new_id",
    "utcnow",
    # Accounts
    "User",
    "UserProfile",
    "UserVerification",
    "EmailVerificationToken",
    "PasswordResetToken",
    "Subscription",
    # Marketplace
    "Category",
    "Service",
    "Project",
    "Bid",
    "Order",
    "Milestone",
    "Transaction",
    "Notification",
    "Conversation",
    "Message",
    "ShortlistEntry",
    "Review",
    "OutsourceRequest",
    "OutsourceInvitation",
    # Moderation
    "Dispute",
    "AuditLog",
]
