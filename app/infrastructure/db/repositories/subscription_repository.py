"""
Subscription Repository

Data access layer for subscription persistence. The unique user_id column
keeps at most one row per user; writes go through PostgreSQL upserts.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import func, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.subscription import (
    SubscriptionPlan,
    SubscriptionStatus,
    compute_period_end,
)
from app.infrastructure.db.models.base import new_id, utcnow
from app.infrastructure.db.models.subscription import Subscription
from app.infrastructure.db.repositories.base_repository import BaseRepository


logger = logging.getLogger(__name__)


class SubscriptionRepository(BaseRepository[Subscription]):
    """
    Repository for subscription data access.

    Implements plan activation as an atomic upsert keyed on user_id.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(Subscription, session)

    # =========================================================================
    # Query Methods
    # =========================================================================

    async def get_by_user_id(self, user_id: str) -> Optional[Subscription]:
        """
        Get subscription by user ID.

        Args:
            user_id: Internal user ID

        Returns:
            Subscription row or None
        """
        return await self.find_one(Subscription.user_id == user_id)

    # =========================================================================
    # Command Methods
    # =========================================================================

    async def create_free(self, user_id: str, now: Optional[datetime] = None) -> Subscription:
        """Create the non-expiring free subscription given at registration."""
        now = now or utcnow()
        subscription = Subscription(
            user_id=user_id,
            plan=SubscriptionPlan.FREE.value,
            status=SubscriptionStatus.ACTIVE.value,
            current_period_start=now,
            current_period_end=compute_period_end(SubscriptionPlan.FREE, now),
        )
        return await self.create(subscription)

    async def activate_plan(
        self,
        user_id: str,
        plan: SubscriptionPlan,
        period_start: datetime,
        period_end: datetime,
        payment_reference: Optional[str],
    ) -> Subscription:
        """
        Create or update the user's subscription as an active paid plan.

        Uses PostgreSQL upsert for atomicity; the existing row (if any) keeps
        its id and usage counters.

        Returns:
            The row after the upsert
        """
        now = utcnow()
        stmt = pg_insert(Subscription).values(
            id=new_id(),
            user_id=user_id,
            plan=plan.value,
            status=SubscriptionStatus.ACTIVE.value,
            bids_used=0,
            services_used=0,
            current_period_start=period_start,
            current_period_end=period_end,
            cancelled_at=None,
            payment_reference=payment_reference,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id"],
            set_={
                "plan": stmt.excluded.plan,
                "status": stmt.excluded.status,
                "current_period_start": stmt.excluded.current_period_start,
                "current_period_end": stmt.excluded.current_period_end,
                "cancelled_at": None,
                "payment_reference": stmt.excluded.payment_reference,
                "updated_at": now,
            },
        ).returning(Subscription.id)

        result = await self._session.execute(stmt)
        subscription_id = result.scalar_one()
        logger.info(f"Activated {plan.value} subscription {subscription_id} for user {user_id}")

        subscription = await self.get_by_id(subscription_id)
        if subscription is not None:
            await self._session.refresh(subscription)
        return subscription

    async def increment_usage(self, user_id: str, field: str, delta: int = 1) -> None:
        """Atomically adjust bids_used or services_used (never below zero)."""
        if field not in ("bids_used", "services_used"):
            raise ValueError(f"Unknown usage counter: {field}")
        column = getattr(Subscription, field)
        new_value = column + delta
        if delta < 0:
            new_value = func.greatest(column + delta, 0)
        await self._session.execute(
            update(Subscription)
            .where(Subscription.user_id == user_id)
            .values({field: new_value, "updated_at": utcnow()})
        )
