"""
Marketplace Domain Models

Enums and request DTOs for projects, bids, services, orders, messaging,
shortlist, outsourcing and moderation.
"""

import re
import unicodedata
from datetime import datetime
from enum import Enum
from typing import Optional, List
from pydantic import BaseModel, Field, field_validator


class ProjectStatus(str, Enum):
    DRAFT = "draft"
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class BudgetType(str, Enum):
    FIXED = "fixed"
    HOURLY = "hourly"


class BidStatus(str, Enum):
    PENDING = "pending"
    SHORTLISTED = "shortlisted"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"


class ServiceStatus(str, Enum):
    DRAFT = "draft"
    PENDING_REVIEW = "pending_review"
    ACTIVE = "active"
    PAUSED = "paused"
    REJECTED = "rejected"


class ServiceTier(str, Enum):
    BASIC = "basic"
    STANDARD = "standard"
    PREMIUM = "premium"


class OrderType(str, Enum):
    SERVICE = "service"
    PROJECT = "project"


class OrderStatus(str, Enum):
    """Order lifecycle. Funding moves pending_payment to in_progress."""
    PENDING_PAYMENT = "pending_payment"
    PENDING_REQUIREMENTS = "pending_requirements"
    IN_PROGRESS = "in_progress"
    DELIVERED = "delivered"
    REVISION_REQUESTED = "revision_requested"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    DISPUTED = "disputed"
    REFUNDED = "refunded"


class MilestoneStatus(str, Enum):
    PENDING = "pending"
    FUNDED = "funded"
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    RELEASED = "released"
    DISPUTED = "disputed"


class TransactionType(str, Enum):
    PAYMENT = "payment"
    ESCROW_FUND = "escrow_fund"
    ESCROW_RELEASE = "escrow_release"
    PAYOUT = "payout"
    REFUND = "refund"
    SUBSCRIPTION = "subscription"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class OutsourceStatus(str, Enum):
    OPEN = "open"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


ACTIVE_OUTSOURCE_STATUSES = (
    OutsourceStatus.OPEN.value,
    OutsourceStatus.ASSIGNED.value,
    OutsourceStatus.IN_PROGRESS.value,
)


class InvitationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"


class VerificationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ReviewType(str, Enum):
    BUYER_TO_SELLER = "buyer_to_seller"
    SELLER_TO_BUYER = "seller_to_buyer"


class DisputeStatus(str, Enum):
    OPEN = "open"
    UNDER_REVIEW = "under_review"
    RESOLVED = "resolved"
    ESCALATED = "escalated"
    CLOSED = "closed"


class DisputeResolution(str, Enum):
    REFUND_FULL = "refund_full"
    REFUND_PARTIAL = "refund_partial"
    RELEASE_FUNDS = "release_funds"
    NO_ACTION = "no_action"
    OTHER = "other"


FREE_BID_LIMIT_MESSAGE = "You've reached your free bid limit. Upgrade to submit more bids."


def slugify(text: str, max_length: int = 100) -> str:
    """Lowercase ASCII slug with single hyphens."""
    normalized = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode()
    slug = re.sub(r"[^a-z0-9]+", "-", normalized.lower()).strip("-")
    return slug[:max_length].rstrip("-")


# =============================================================================
# Projects & Bids
# =============================================================================

class CreateProjectRequest(BaseModel):
    title: str = Field(..., min_length=5, max_length=200)
    description: str = Field(..., min_length=20)
    category_id: str
    budget_type: BudgetType = BudgetType.FIXED
    budget_min: Optional[int] = Field(None, ge=0, description="In cents")
    budget_max: Optional[int] = Field(None, ge=0, description="In cents")
    deadline: Optional[datetime] = None
    expected_duration: Optional[str] = None
    skills: List[str] = Field(default_factory=list)

    @field_validator("title", "description")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Field cannot be empty or whitespace only")
        return v.strip()


class SubmitBidRequest(BaseModel):
    project_id: str
    amount: int = Field(..., gt=0, description="In cents")
    proposal: str = Field(..., min_length=10)
    delivery_days: int = Field(..., ge=1, le=365)


# =============================================================================
# Services
# =============================================================================

class PricingTierInput(BaseModel):
    name: str
    description: str = ""
    price: int = Field(..., gt=0, description="In cents")
    delivery_days: int = Field(..., ge=1)
    revisions: int = Field(1, ge=0)


class CreateServiceRequest(BaseModel):
    title: str = Field(..., min_length=5, max_length=200)
    description: str = Field(..., min_length=20)
    short_description: Optional[str] = Field(None, max_length=300)
    category_id: str
    basic: PricingTierInput
    standard: Optional[PricingTierInput] = None
    premium: Optional[PricingTierInput] = None
    tags: List[str] = Field(default_factory=list)
    max_revisions: int = Field(1, ge=0)


class UpdateServiceRequest(BaseModel):
    title: Optional[str] = Field(None, min_length=5, max_length=200)
    description: Optional[str] = Field(None, min_length=20)
    short_description: Optional[str] = Field(None, max_length=300)
    category_id: Optional[str] = None
    basic: Optional[PricingTierInput] = None
    standard: Optional[PricingTierInput] = None
    premium: Optional[PricingTierInput] = None
    tags: Optional[List[str]] = None


# =============================================================================
# Orders
# =============================================================================

class MilestoneInput(BaseModel):
    title: str
    description: Optional[str] = None
    amount: int = Field(..., gt=0, description="In cents")
    due_date: Optional[datetime] = None


class CreateOrderFromServiceRequest(BaseModel):
    service_id: str
    service_tier: ServiceTier = ServiceTier.BASIC
    requirements: Optional[str] = None


class CreateOrderFromBidRequest(BaseModel):
    bid_id: str
    milestones: List[MilestoneInput] = Field(default_factory=list)


class SubmitDeliveryRequest(BaseModel):
    message: str = Field(..., min_length=1)
    milestone_id: Optional[str] = None


class AcceptDeliveryRequest(BaseModel):
    milestone_id: Optional[str] = None


class RevisionRequest(BaseModel):
    reason: str = Field(..., min_length=3)
    details: Optional[str] = None


class SubmitRequirementsRequest(BaseModel):
    requirements: str = Field(..., min_length=1)


class CancelOrderRequest(BaseModel):
    reason: str = ""


class InitiatePaymentRequest(BaseModel):
    """Body of the payment initiation endpoint."""
    order_id: str = Field(..., alias="orderId")
    milestone_id: Optional[str] = Field(None, alias="milestoneId")
    provider: str = "payfast"

    model_config = {"populate_by_name": True}


# =============================================================================
# Messaging, Shortlist, Outsourcing
# =============================================================================

class SendMessageRequest(BaseModel):
    conversation_id: str
    content: str = ""


class StartConversationRequest(BaseModel):
    other_user_id: str
    order_id: Optional[str] = None


class ShortlistAddRequest(BaseModel):
    user_id: str
    category_id: Optional[str] = None
    notes: Optional[str] = None
    priority: int = Field(0, ge=0, le=10)


class ShortlistUpdateRequest(BaseModel):
    category_id: Optional[str] = None
    notes: Optional[str] = None
    priority: Optional[int] = Field(None, ge=0, le=10)


class CreateOutsourceRequest(BaseModel):
    original_order_id: str
    title: str = Field(..., min_length=5, max_length=200)
    description: str
    requirements: Optional[str] = None
    amount: int = Field(..., gt=0, description="In cents")
    delivery_days: int = Field(..., ge=1)
    category_id: Optional[str] = None
    is_anonymous: bool = True
    invitee_ids: List[str] = Field(default_factory=list)
    message: Optional[str] = None


class InviteRequest(BaseModel):
    invitee_ids: List[str]
    message: Optional[str] = None


# =============================================================================
# Reviews
# =============================================================================

class CreateReviewRequest(BaseModel):
    order_id: str
    overall_rating: int = Field(..., ge=1, le=5)
    communication_rating: Optional[int] = Field(None, ge=1, le=5)
    quality_rating: Optional[int] = Field(None, ge=1, le=5)
    value_rating: Optional[int] = Field(None, ge=1, le=5)
    timeliness_rating: Optional[int] = Field(None, ge=1, le=5)
    title: Optional[str] = Field(None, max_length=200)
    comment: str


class ReviewResponseRequest(BaseModel):
    response: str


# =============================================================================
# Admin
# =============================================================================

class SuspendUserRequest(BaseModel):
    reason: str = Field(..., min_length=3)


class RejectVerificationRequest(BaseModel):
    reason: str = Field(..., min_length=3)


class ResolveDisputeRequest(BaseModel):
    resolution: DisputeResolution
    notes: str
    partial_amount: Optional[int] = Field(None, ge=0)


class CategoryCreateRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    slug: Optional[str] = None
    description: Optional[str] = None
    parent_id: Optional[str] = None
    icon: Optional[str] = None


class CategoryUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    slug: Optional[str] = None
    description: Optional[str] = None
    icon: Optional[str] = None
    is_active: Optional[bool] = None
