"""
Review Repository
"""

from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.marketplace import ReviewType
from app.infrastructure.db.models.review import Review
from app.infrastructure.db.repositories.base_repository import BaseRepository


DEFAULT_REVIEW_LIMIT = 50


class ReviewRepository(BaseRepository[Review]):
    def __init__(self, session: AsyncSession):
        super().__init__(Review, session)

    async def list_for_reviewee(
        self,
        user_id: str,
        review_type: Optional[ReviewType] = None,
        limit: int = DEFAULT_REVIEW_LIMIT,
    ) -> List[Review]:
        """Visible reviews a user received, newest first."""
        conditions = [Review.reviewee_id == user_id, Review.is_visible.is_(True)]
        if review_type is not None:
            conditions.append(Review.review_type == review_type.value)
        return await self.find_many(
            *conditions,
            order_by=[Review.created_at.desc()],
            limit=limit,
        )

    async def list_by_reviewer(self, user_id: str) -> List[Review]:
        return await self.find_many(
            Review.reviewer_id == user_id,
            order_by=[Review.created_at.desc()],
        )

    async def list_for_order(self, order_id: str) -> List[Review]:
        return await self.find_many(
            Review.order_id == order_id,
            order_by=[Review.created_at.desc()],
        )

    async def list_seller_ratings(self, user_id: str) -> List[Review]:
        """Visible buyer_to_seller reviews, the ones a seller's rating is built from."""
        return await self.find_many(
            Review.reviewee_id == user_id,
            Review.review_type == ReviewType.BUYER_TO_SELLER.value,
            Review.is_visible.is_(True),
        )
