"""
Transaction Repository

Append-only payment ledger. The unique provider_reference column is the
idempotency key for gateway notifications; settlement statements are
conflict-safe so racing deliveries cannot both record a payment.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.marketplace import TransactionStatus
from app.infrastructure.db.models.base import new_id, utcnow
from app.infrastructure.db.models.transaction import Transaction
from app.infrastructure.db.repositories.base_repository import BaseRepository


logger = logging.getLogger(__name__)


class TransactionRepository(BaseRepository[Transaction]):
    """Repository for ledger rows."""

    def __init__(self, session: AsyncSession):
        super().__init__(Transaction, session)

    async def get_by_reference(self, reference: str) -> Optional[Transaction]:
        return await self.find_one(Transaction.provider_reference == reference)

    async def is_settled(self, reference: str) -> bool:
        """True when a completed row already exists for the reference."""
        count = await self.count_where(
            Transaction.provider_reference == reference,
            Transaction.status == TransactionStatus.COMPLETED.value,
        )
        return count > 0

    async def record_completed(self, reference: str, values: Dict[str, Any]) -> bool:
        """
        Record a completed payment for ``reference`` exactly once.

        A pending row created at initiation is completed in place; otherwise
        a new row is inserted with ON CONFLICT DO NOTHING.

        Returns:
            True if this call recorded the payment, False if another
            delivery already had
        """
        now = utcnow()

        completed = await self._session.execute(
            update(Transaction)
            .where(
                Transaction.provider_reference == reference,
                Transaction.status != TransactionStatus.COMPLETED.value,
            )
            .values(
                status=TransactionStatus.COMPLETED.value,
                provider_transaction_id=values.get("provider_transaction_id"),
                completed_at=now,
                updated_at=now,
                error_message=None,
            )
            .returning(Transaction.id)
        )
        if completed.scalar_one_or_none() is not None:
            return True

        stmt = (
            pg_insert(Transaction)
            .values(
                id=new_id(),
                provider_reference=reference,
                status=TransactionStatus.COMPLETED.value,
                completed_at=now,
                created_at=now,
                updated_at=now,
                **values,
            )
            .on_conflict_do_nothing(index_elements=["provider_reference"])
            .returning(Transaction.id)
        )
        inserted = await self._session.execute(stmt)
        return inserted.scalar_one_or_none() is not None

    async def mark_failed(self, reference: str, message: Optional[str] = None) -> bool:
        """Fail a still-pending row. Completed rows are never touched."""
        result = await self._session.execute(
            update(Transaction)
            .where(
                Transaction.provider_reference == reference,
                Transaction.status == TransactionStatus.PENDING.value,
            )
            .values(
                status=TransactionStatus.FAILED.value,
                error_message=message,
                updated_at=utcnow(),
            )
            .returning(Transaction.id)
        )
        return result.scalar_one_or_none() is not None

    async def total_completed_amount(self, *types: str) -> int:
        """Sum of completed amounts, optionally restricted to types."""
        stmt = select(func.coalesce(func.sum(Transaction.amount), 0)).where(
            Transaction.status == TransactionStatus.COMPLETED.value
        )
        if types:
            stmt = stmt.where(Transaction.type.in_(types))
        result = await self._session.execute(stmt)
        return int(result.scalar_one())

    async def attach_subscription(self, reference: str, subscription_id: str) -> None:
        """Link a settled subscription payment to its subscription row."""
        await self._session.execute(
            update(Transaction)
            .where(Transaction.provider_reference == reference)
            .values(subscription_id=subscription_id, updated_at=utcnow())
        )
