"""
Repository Layer for Zomieks

Exports all repository classes for dependency injection.
"""

from app.infrastructure.db.repositories.base_repository import (
    BaseRepository,
    IReadRepository,
    IWriteRepository,
)
from app.infrastructure.db.repositories.user_repository import (
    UserRepository,
    ProfileRepository,
    VerificationRepository,
    EmailTokenRepository,
)
from app.infrastructure.db.repositories.subscription_repository import SubscriptionRepository
from app.infrastructure.db.repositories.catalog_repository import (
    CategoryRepository,
    ServiceRepository,
)
from app.infrastructure.db.repositories.project_repository import (
    ProjectRepository,
    BidRepository,
)
from app.infrastructure.db.repositories.order_repository import (
    OrderRepository,
    MilestoneRepository,
)
from app.infrastructure.db.repositories.transaction_repository import TransactionRepository
from app.infrastructure.db.repositories.notification_repository import NotificationRepository
from app.infrastructure.db.repositories.messaging_repository import (
    ConversationRepository,
    MessageRepository,
)
from app.infrastructure.db.repositories.shortlist_repository import ShortlistRepository
from app.infrastructure.db.repositories.review_repository import ReviewRepository
from app.infrastructure.db.repositories.outsourcing_repository import (
    OutsourceRequestRepository,
    InvitationRepository,
)
from app.infrastructure.db.repositories.moderation_repository import (
    DisputeRepository,
    AuditLogRepository,
)


__all__ = [
    # Base
    "BaseRepository",
    "IReadRepository",
    "IWriteRepository",
    # Accounts
    "UserRepository",
    "ProfileRepository",
    "VerificationRepository",
    "EmailTokenRepository",
    "SubscriptionRepository",
    # Marketplace
    "CategoryRepository",
    "ServiceRepository",
    "ProjectRepository",
    "BidRepository",
    "OrderRepository",
    "MilestoneRepository",
    "TransactionRepository",
    "NotificationRepository",
    "ConversationRepository",
    "MessageRepository",
    "ShortlistRepository",
    "ReviewRepository",
    "OutsourceRequestRepository",
    "InvitationRepository",
    # Moderation
    "DisputeRepository",
    "AuditLogRepository",
]
