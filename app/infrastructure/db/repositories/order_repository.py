"""
Order Repository

Orders and milestones.
"""

from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.db.models.order import Order, Milestone
from app.infrastructure.db.repositories.base_repository import BaseRepository


class OrderRepository(BaseRepository[Order]):
    def __init__(self, session: AsyncSession):
        super().__init__(Order, session)

    async def list_for_user(self, user_id: str) -> List[Order]:
        """Orders where the user is buyer or seller, newest first."""
        return await self.find_many(
            or_(Order.buyer_id == user_id, Order.seller_id == user_id),
            order_by=[Order.created_at.desc()],
        )

    async def count_for_seller(self, seller_id: str, status: Optional[str] = None) -> int:
        conditions = [Order.seller_id == seller_id]
        if status is not None:
            conditions.append(Order.status == status)
        return await self.count_where(*conditions)

    async def get_for_participant(self, order_id: str, user_id: str) -> Optional[Order]:
        return await self.find_one(
            Order.id == order_id,
            or_(Order.buyer_id == user_id, Order.seller_id == user_id),
        )


class MilestoneRepository(BaseRepository[Milestone]):
    def __init__(self, session: AsyncSession):
        super().__init__(Milestone, session)

    async def list_by_order(self, order_id: str) -> List[Milestone]:
        return await self.find_many(
            Milestone.order_id == order_id,
            order_by=[Milestone.sort_order],
        )

    async def get_for_order(self, milestone_id: str, order_id: str) -> Optional[Milestone]:
        return await self.find_one(Milestone.id == milestone_id, Milestone.order_id == order_id)
