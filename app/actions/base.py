"""
Action Base

Shared plumbing for action classes: the caller's unit of work, the
notification emitter and identity/plan guards.
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.models import NOT_LOGGED_IN, ActionResult, Identity
from app.domain.subscription import SubscriptionPlan, is_paid_and_active
from app.infrastructure.db.models.base import utcnow
from app.infrastructure.db.models.subscription import Subscription
from app.infrastructure.db.repositories.subscription_repository import SubscriptionRepository
from app.infrastructure.services.notification_service import NotificationService


logger = logging.getLogger(__name__)

ID_VERIFICATION_REQUIRED = "You must verify your ID first"


class BaseActions:
    """
    Base class for action groups.

    Every public method receives the caller's identity explicitly and returns
    an ActionResult; business-rule failures never raise.

    Args:
        session: Async database session (committed by the caller)
        notifier: Notification emitter (defaults to one on the same session)
    """

    def __init__(self, session: AsyncSession, notifier: Optional[NotificationService] = None):
        self.session = session
        self.notifier = notifier or NotificationService(session)
        self.subscriptions = SubscriptionRepository(session)

    @staticmethod
    def require_identity(identity: Optional[Identity]) -> Optional[ActionResult]:
        """Failure result when nobody is logged in, else None."""
        if identity is None:
            return ActionResult.fail(NOT_LOGGED_IN)
        return None

    @staticmethod
    def require_verified(
        identity: Optional[Identity],
        message: str = ID_VERIFICATION_REQUIRED,
    ) -> Optional[ActionResult]:
        """Failure result unless a logged-in, ID-verified caller."""
        if identity is None:
            return ActionResult.fail(NOT_LOGGED_IN)
        if not identity.is_id_verified:
            return ActionResult.fail(message)
        return None

    async def load_subscription(self, user_id: str) -> Optional[Subscription]:
        return await self.subscriptions.get_by_user_id(user_id)

    async def current_plan(self, user_id: str) -> str:
        """Effective plan: free unless a paid plan is active and unexpired."""
        subscription = await self.load_subscription(user_id)
        if subscription is None:
            return SubscriptionPlan.FREE.value
        if is_paid_and_active(
            subscription.plan,
            subscription.status,
            subscription.current_period_end,
            utcnow(),
        ):
            return subscription.plan
        return SubscriptionPlan.FREE.value

    async def has_pro(self, user_id: str) -> bool:
        return await self.current_plan(user_id) != SubscriptionPlan.FREE.value
