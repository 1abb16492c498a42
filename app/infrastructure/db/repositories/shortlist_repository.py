"""
Shortlist Repository
"""

from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.db.models.shortlist import ShortlistEntry
from app.infrastructure.db.repositories.base_repository import BaseRepository


class ShortlistRepository(BaseRepository[ShortlistEntry]):
    def __init__(self, session: AsyncSession):
        super().__init__(ShortlistEntry, session)

    async def get_entry(self, user_id: str, shortlisted_user_id: str) -> Optional[ShortlistEntry]:
        return await self.find_one(
            ShortlistEntry.user_id == user_id,
            ShortlistEntry.shortlisted_user_id == shortlisted_user_id,
        )

    async def list_for_user(self, user_id: str, category_id: Optional[str] = None) -> List[ShortlistEntry]:
        """Highest priority first, then newest."""
        conditions = [ShortlistEntry.user_id == user_id]
        if category_id is not None:
            conditions.append(ShortlistEntry.category_id == category_id)
        return await self.find_many(
            *conditions,
            order_by=[ShortlistEntry.priority.desc(), ShortlistEntry.created_at.desc()],
        )
