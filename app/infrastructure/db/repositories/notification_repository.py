"""
Notification Repository
"""

from typing import List

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.db.models.base import utcnow
from app.infrastructure.db.models.notification import Notification
from app.infrastructure.db.repositories.base_repository import BaseRepository


class NotificationRepository(BaseRepository[Notification]):
    def __init__(self, session: AsyncSession):
        super().__init__(Notification, session)

    async def list_for_user(
        self,
        user_id: str,
        unread_only: bool = False,
        limit: int = 50,
    ) -> List[Notification]:
        conditions = [Notification.user_id == user_id]
        if unread_only:
            conditions.append(Notification.is_read.is_(False))
        return await self.find_many(
            *conditions,
            order_by=[Notification.created_at.desc()],
            limit=limit,
        )

    async def count_unread(self, user_id: str) -> int:
        return await self.count_where(
            Notification.user_id == user_id,
            Notification.is_read.is_(False),
        )

    async def mark_read(self, notification_id: str, user_id: str) -> bool:
        """Mark one of the user's notifications read. False if not theirs."""
        result = await self._session.execute(
            update(Notification)
            .where(Notification.id == notification_id, Notification.user_id == user_id)
            .values(is_read=True, read_at=utcnow())
            .returning(Notification.id)
        )
        return result.scalar_one_or_none() is not None

    async def mark_all_read(self, user_id: str) -> int:
        """Returns the number of notifications changed."""
        result = await self._session.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True, read_at=utcnow())
            .returning(Notification.id)
        )
        return len(result.scalars().all())

    async def mark_email_sent(self, notification_id: str) -> None:
        await self._session.execute(
            update(Notification)
            .where(Notification.id == notification_id)
            .values(email_sent=True)
        )
