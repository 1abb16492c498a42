"""
Project Repository

Projects and bids.
"""

from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.db.models.base import utcnow
from app.infrastructure.db.models.project import Project, Bid
from app.infrastructure.db.repositories.base_repository import BaseRepository


class ProjectRepository(BaseRepository[Project]):
    def __init__(self, session: AsyncSession):
        super().__init__(Project, session)

    async def get_by_slug(self, slug: str) -> Optional[Project]:
        return await self.find_one(Project.slug == slug)

    async def list_by_buyer(self, buyer_id: str) -> List[Project]:
        return await self.find_many(
            Project.buyer_id == buyer_id,
            order_by=[Project.created_at.desc()],
        )

    async def list_open(self, limit: int = 50) -> List[Project]:
        return await self.find_many(
            Project.status == "open",
            order_by=[Project.created_at.desc()],
            limit=limit,
        )

    async def increment_bid_count(self, project_id: str) -> None:
        await self._session.execute(
            update(Project)
            .where(Project.id == project_id)
            .values(bid_count=Project.bid_count + 1, updated_at=utcnow())
        )

    async def increment_views(self, project_id: str) -> None:
        await self._session.execute(
            update(Project)
            .where(Project.id == project_id)
            .values(view_count=Project.view_count + 1)
        )


class BidRepository(BaseRepository[Bid]):
    def __init__(self, session: AsyncSession):
        super().__init__(Bid, session)

    async def get_for_bidder(self, project_id: str, bidder_id: str) -> Optional[Bid]:
        return await self.find_one(Bid.project_id == project_id, Bid.bidder_id == bidder_id)

    async def list_by_project(self, project_id: str) -> List[Bid]:
        return await self.find_many(
            Bid.project_id == project_id,
            order_by=[Bid.created_at.desc()],
        )

    async def list_by_bidder(self, bidder_id: str) -> List[Bid]:
        return await self.find_many(
            Bid.bidder_id == bidder_id,
            order_by=[Bid.created_at.desc()],
        )

    async def reject_others(self, project_id: str, accepted_bid_id: str) -> None:
        """Reject every still-open bid on the project except the accepted one."""
        await self._session.execute(
            update(Bid)
            .where(
                Bid.project_id == project_id,
                Bid.id != accepted_bid_id,
                Bid.status.in_(("pending", "shortlisted")),
            )
            .values(status="rejected", updated_at=utcnow())
        )
