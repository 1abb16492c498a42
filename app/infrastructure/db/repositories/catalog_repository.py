"""
Catalog Repository

Categories and service listings.
"""

from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.db.models.catalog import Category, Service
from app.infrastructure.db.repositories.base_repository import BaseRepository


class CategoryRepository(BaseRepository[Category]):
    def __init__(self, session: AsyncSession):
        super().__init__(Category, session)

    async def get_active(self, category_id: str) -> Optional[Category]:
        return await self.find_one(Category.id == category_id, Category.is_active.is_(True))

    async def get_by_slug(self, slug: str) -> Optional[Category]:
        return await self.find_one(Category.slug == slug)

    async def list_active(self) -> List[Category]:
        return await self.find_many(
            Category.is_active.is_(True),
            order_by=[Category.sort_order, Category.name],
        )

    async def list_all(self) -> List[Category]:
        return await self.find_many(order_by=[Category.name])


class ServiceRepository(BaseRepository[Service]):
    def __init__(self, session: AsyncSession):
        super().__init__(Service, session)

    async def get_active_by_slug(self, slug: str) -> Optional[Service]:
        return await self.find_one(
            Service.slug == slug,
            Service.status == "active",
            Service.is_active.is_(True),
        )

    async def list_by_seller(self, seller_id: str) -> List[Service]:
        return await self.find_many(
            Service.seller_id == seller_id,
            order_by=[Service.created_at.desc()],
        )

    async def increment_views(self, service_id: str) -> None:
        await self._session.execute(
            update(Service)
            .where(Service.id == service_id)
            .values(view_count=Service.view_count + 1)
        )
