"""
Admin Actions

Platform moderation: user suspension, ID verification review, dispute
resolution and the category catalog. Every write is recorded in the audit
log. Moderators may read; only admins may write.
"""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError

from app.actions.base import BaseActions
from app.domain.marketplace import (
    CategoryCreateRequest,
    CategoryUpdateRequest,
    DisputeStatus,
    OrderStatus,
    ProjectStatus,
    ResolveDisputeRequest,
    ServiceStatus,
    TransactionType,
    VerificationStatus,
    slugify,
)
from app.domain.models import ActionResult, Identity, UserRole
from app.domain.notifications import NotificationCreate, NotificationType
from app.infrastructure.auth.session_store import SessionStore
from app.infrastructure.db.models.base import utcnow
from app.infrastructure.db.models.catalog import Category, Service
from app.infrastructure.db.models.order import Order
from app.infrastructure.db.models.project import Project
from app.infrastructure.db.repositories.catalog_repository import CategoryRepository, ServiceRepository
from app.infrastructure.db.repositories.moderation_repository import (
    AuditLogRepository,
    DisputeRepository,
)
from app.infrastructure.db.repositories.order_repository import OrderRepository
from app.infrastructure.db.repositories.project_repository import ProjectRepository
from app.infrastructure.db.repositories.transaction_repository import TransactionRepository
from app.infrastructure.db.repositories.user_repository import UserRepository, VerificationRepository
from app.infrastructure.exceptions import SessionStoreError


logger = logging.getLogger(__name__)

UNAUTHORIZED = "Unauthorized"


class AdminActions(BaseActions):
    """
    Staff-only actions.

    Args:
        session: Async database session
        notifier: Notification emitter
        session_store: Used to revoke sessions of suspended users
    """

    def __init__(self, session, notifier=None, session_store: Optional[SessionStore] = None):
        super().__init__(session, notifier)
        self.session_store = session_store
        self.users = UserRepository(session)
        self.verifications = VerificationRepository(session)
        self.disputes = DisputeRepository(session)
        self.audit = AuditLogRepository(session)
        self.categories = CategoryRepository(session)
        self.orders = OrderRepository(session)
        self.projects = ProjectRepository(session)
        self.services = ServiceRepository(session)
        self.transactions = TransactionRepository(session)

    @staticmethod
    def require_staff(identity: Optional[Identity]) -> Optional[ActionResult]:
        if identity is None or not identity.is_staff:
            return ActionResult.fail(UNAUTHORIZED)
        return None

    @staticmethod
    def require_admin(identity: Optional[Identity]) -> Optional[ActionResult]:
        if identity is None or not identity.is_admin:
            return ActionResult.fail(UNAUTHORIZED)
        return None

    # =========================================================================
    # Dashboard
    # =========================================================================

    async def get_platform_stats(self, identity: Optional[Identity]) -> ActionResult:
        denied = self.require_staff(identity)
        if denied:
            return denied

        stats = {
            "total_users": await self.users.count(),
            "active_services": await self.services.count_where(
                Service.status == ServiceStatus.ACTIVE.value
            ),
            "open_projects": await self.projects.count_where(
                Project.status == ProjectStatus.OPEN.value
            ),
            "total_orders": await self.orders.count(),
            "active_orders": await self.orders.count_where(
                Order.status == OrderStatus.IN_PROGRESS.value
            ),
            "pending_verifications": len(await self.verifications.list_pending()),
            "open_disputes": len(await self.disputes.list_by_status(DisputeStatus.OPEN.value)),
            "escrow_volume": await self.transactions.total_completed_amount(
                TransactionType.ESCROW_FUND.value
            ),
            "subscription_revenue": await self.transactions.total_completed_amount(
                TransactionType.SUBSCRIPTION.value
            ),
        }
        return ActionResult.ok(stats=stats)

    # =========================================================================
    # Users
    # =========================================================================

    async def get_users(
        self,
        identity: Optional[Identity],
        query: Optional[str] = None,
        page: int = 1,
        page_size: int = 50,
    ) -> ActionResult:
        denied = self.require_staff(identity)
        if denied:
            return denied

        page = max(page, 1)
        users = await self.users.search(query, skip=(page - 1) * page_size, limit=page_size)
        return ActionResult.ok(
            users=[u.model_dump(exclude={"password_hash"}) for u in users],
            total=await self.users.count_matching(query),
            page=page,
        )

    async def suspend_user(self, identity: Optional[Identity], user_id: str, reason: str) -> ActionResult:
        denied = self.require_admin(identity)
        if denied:
            return denied

        user = await self.users.get_by_id(user_id)
        if user is None:
            return ActionResult.fail("User not found")
        if user.role == UserRole.ADMIN.value:
            return ActionResult.fail("Cannot suspend an admin")

        user.is_suspended = True
        user.suspended_reason = reason
        await self.users.save(user)

        revoked = 0
        if self.session_store is not None:
            try:
                revoked = await self.session_store.delete_all_user_sessions(user.id)
            except SessionStoreError as e:
                logger.error(f"[SESSION] Could not revoke sessions for {user.id}: {e}")

        await self.audit.log(
            actor_id=identity.user_id,
            actor_email=identity.email,
            action="user.suspend",
            entity_type="user",
            entity_id=user.id,
            changes={"is_suspended": True},
            details={"reason": reason, "sessions_revoked": revoked},
        )
        await self.notifier.notify(
            NotificationCreate(
                user_id=user.id,
                type=NotificationType.SYSTEM,
                title="Account Suspended",
                message=f"Your account has been suspended. Reason: {reason}",
                entity_type="user",
                entity_id=user.id,
            )
        )
        logger.info(f"User {user.id} suspended by {identity.user_id}")
        return ActionResult.ok(sessions_revoked=revoked)

    async def unsuspend_user(self, identity: Optional[Identity], user_id: str) -> ActionResult:
        denied = self.require_admin(identity)
        if denied:
            return denied

        user = await self.users.get_by_id(user_id)
        if user is None:
            return ActionResult.fail("User not found")
        if not user.is_suspended:
            return ActionResult.fail("User is not suspended")

        user.is_suspended = False
        user.suspended_reason = None
        await self.users.save(user)

        await self.audit.log(
            actor_id=identity.user_id,
            actor_email=identity.email,
            action="user.unsuspend",
            entity_type="user",
            entity_id=user.id,
            changes={"is_suspended": False},
        )
        await self.notifier.notify(
            NotificationCreate(
                user_id=user.id,
                type=NotificationType.SYSTEM,
                title="Account Restored",
                message="Your account suspension has been lifted.",
                entity_type="user",
                entity_id=user.id,
            )
        )
        return ActionResult.ok()

    # =========================================================================
    # ID verification
    # =========================================================================

    async def get_pending_verifications(self, identity: Optional[Identity]) -> ActionResult:
        denied = self.require_staff(identity)
        if denied:
            return denied

        pending = []
        for verification in await self.verifications.list_pending():
            user = await self.users.get_by_id(verification.user_id)
            pending.append(
                {
                    **verification.model_dump(),
                    "user": {"id": user.id, "name": user.name, "email": user.email} if user else None,
                }
            )
        return ActionResult.ok(verifications=pending)

    async def _review_verification(
        self,
        identity: Identity,
        verification_id: str,
        approved: bool,
        reason: Optional[str] = None,
    ) -> ActionResult:
        verification = await self.verifications.get_by_id(verification_id)
        if verification is None:
            return ActionResult.fail("Verification not found")
        if verification.status != VerificationStatus.PENDING.value:
            return ActionResult.fail("Verification has already been reviewed")

        status = VerificationStatus.APPROVED if approved else VerificationStatus.REJECTED
        verification.status = status.value
        verification.notes = reason
        verification.reviewed_by = identity.user_id
        verification.reviewed_at = utcnow()
        await self.verifications.save(verification)

        user = await self.users.get_by_id(verification.user_id)
        if user is not None:
            user.is_id_verified = approved
            await self.users.save(user)

        await self.audit.log(
            actor_id=identity.user_id,
            actor_email=identity.email,
            action=f"verification.{'approve' if approved else 'reject'}",
            entity_type="user_verification",
            entity_id=verification.id,
            changes={"status": status.value},
            details={"reason": reason} if reason else None,
        )

        if approved:
            notification = NotificationCreate(
                user_id=verification.user_id,
                type=NotificationType.VERIFICATION_APPROVED,
                title="ID Verified",
                message="Your identity has been verified. You can now post projects, bid and sell services.",
                entity_type="user_verification",
                entity_id=verification.id,
                send_email=True,
            )
        else:
            notification = NotificationCreate(
                user_id=verification.user_id,
                type=NotificationType.VERIFICATION_REJECTED,
                title="ID Verification Rejected",
                message=f"Your ID verification was rejected. Reason: {reason}",
                entity_type="user_verification",
                entity_id=verification.id,
                send_email=True,
                email_data={"reason": reason},
            )
        await self.notifier.notify(notification)
        return ActionResult.ok()

    async def approve_verification(self, identity: Optional[Identity], verification_id: str) -> ActionResult:
        denied = self.require_admin(identity)
        if denied:
            return denied
        return await self._review_verification(identity, verification_id, approved=True)

    async def reject_verification(
        self,
        identity: Optional[Identity],
        verification_id: str,
        reason: str,
    ) -> ActionResult:
        denied = self.require_admin(identity)
        if denied:
            return denied
        return await self._review_verification(identity, verification_id, approved=False, reason=reason)

    # =========================================================================
    # Disputes
    # =========================================================================

    async def get_disputes(self, identity: Optional[Identity], status: Optional[str] = None) -> ActionResult:
        denied = self.require_staff(identity)
        if denied:
            return denied

        disputes = await self.disputes.list_by_status(status)
        return ActionResult.ok(disputes=[d.model_dump() for d in disputes])

    async def resolve_dispute(
        self,
        identity: Optional[Identity],
        dispute_id: str,
        data: ResolveDisputeRequest,
    ) -> ActionResult:
        denied = self.require_admin(identity)
        if denied:
            return denied

        dispute = await self.disputes.get_by_id(dispute_id)
        if dispute is None:
            return ActionResult.fail("Dispute not found")
        if dispute.status in (DisputeStatus.RESOLVED.value, DisputeStatus.CLOSED.value):
            return ActionResult.fail("Dispute is already resolved")

        dispute.status = DisputeStatus.RESOLVED.value
        dispute.resolution = data.resolution.value
        dispute.resolution_notes = data.notes
        dispute.resolution_amount = data.partial_amount
        dispute.resolved_by = identity.user_id
        dispute.resolved_at = utcnow()
        await self.disputes.save(dispute)

        await self.audit.log(
            actor_id=identity.user_id,
            actor_email=identity.email,
            action="dispute.resolve",
            entity_type="dispute",
            entity_id=dispute.id,
            changes={"status": dispute.status, "resolution": dispute.resolution},
            details={"notes": data.notes, "partial_amount": data.partial_amount},
        )

        for party in (dispute.raised_by_id, dispute.against_id):
            await self.notifier.notify(
                NotificationCreate(
                    user_id=party,
                    type=NotificationType.DISPUTE_RESOLVED,
                    title="Dispute Resolved",
                    message=f"The dispute \"{dispute.title}\" has been resolved.",
                    entity_type="dispute",
                    entity_id=dispute.id,
                    send_email=True,
                )
            )
        return ActionResult.ok()

    # =========================================================================
    # Categories
    # =========================================================================

    async def create_category(self, identity: Optional[Identity], data: CategoryCreateRequest) -> ActionResult:
        denied = self.require_admin(identity)
        if denied:
            return denied

        slug = slugify(data.slug or data.name)
        if not slug:
            return ActionResult.fail("Invalid category slug")
        if await self.categories.get_by_slug(slug):
            return ActionResult.fail("A category with this slug already exists")

        try:
            async with self.session.begin_nested():
                category = await self.categories.create(
                    Category(
                        name=data.name,
                        slug=slug,
                        description=data.description,
                        parent_id=data.parent_id,
                        icon=data.icon,
                    )
                )
        except IntegrityError:
            return ActionResult.fail("A category with this slug already exists")

        await self.audit.log(
            actor_id=identity.user_id,
            actor_email=identity.email,
            action="category.create",
            entity_type="category",
            entity_id=category.id,
            changes={"name": category.name, "slug": category.slug},
        )
        return ActionResult.ok(category_id=category.id, slug=category.slug)

    async def update_category(
        self,
        identity: Optional[Identity],
        category_id: str,
        data: CategoryUpdateRequest,
    ) -> ActionResult:
        denied = self.require_admin(identity)
        if denied:
            return denied

        category = await self.categories.get_by_id(category_id)
        if category is None:
            return ActionResult.fail("Category not found")

        changes = data.model_dump(exclude_unset=True)
        if "slug" in changes:
            changes["slug"] = slugify(changes["slug"] or category.name)
            other = await self.categories.get_by_slug(changes["slug"])
            if other is not None and other.id != category.id:
                return ActionResult.fail("A category with this slug already exists")

        updated = await self.categories.update(category.id, changes)
        await self.audit.log(
            actor_id=identity.user_id,
            actor_email=identity.email,
            action="category.update",
            entity_type="category",
            entity_id=category.id,
            changes=changes,
        )
        return ActionResult.ok(category=updated.model_dump())

    async def get_audit_logs(self, identity: Optional[Identity], limit: int = 100) -> ActionResult:
        denied = self.require_admin(identity)
        if denied:
            return denied

        logs = await self.audit.list_recent(limit=min(max(limit, 1), 500))
        return ActionResult.ok(logs=[entry.model_dump() for entry in logs])
