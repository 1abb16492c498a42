"""
Service Listing Actions

Sellers publish fixed-price services with up to three pricing tiers.
Free plans may keep one service.
"""

import logging
from typing import Optional

from app.actions.base import BaseActions
from app.domain.marketplace import (
    CreateServiceRequest,
    OrderStatus,
    ServiceStatus,
    UpdateServiceRequest,
    slugify,
)
from app.domain.models import ActionResult, Identity
from app.domain.subscription import get_max_services
from app.infrastructure.db.models.base import new_id
from app.infrastructure.db.models.catalog import Service
from app.infrastructure.db.models.order import Order
from app.infrastructure.db.repositories.catalog_repository import (
    CategoryRepository,
    ServiceRepository,
)
from app.infrastructure.db.repositories.order_repository import OrderRepository


logger = logging.getLogger(__name__)

FREE_SERVICE_LIMIT_MESSAGE = (
    "You've reached your free service limit. Upgrade to create more services."
)

CLOSED_ORDER_STATUSES = (
    OrderStatus.COMPLETED.value,
    OrderStatus.CANCELLED.value,
    OrderStatus.REFUNDED.value,
)


def build_pricing_tiers(basic, standard=None, premium=None) -> dict:
    tiers = {"basic": basic.model_dump()}
    if standard is not None:
        tiers["standard"] = standard.model_dump()
    if premium is not None:
        tiers["premium"] = premium.model_dump()
    return tiers


class ServiceActions(BaseActions):
    """Service listings and categories."""

    def __init__(self, session, notifier=None):
        super().__init__(session, notifier)
        self.services = ServiceRepository(session)
        self.categories = CategoryRepository(session)
        self.orders = OrderRepository(session)

    async def _owned(self, identity: Identity, service_id: str) -> Optional[Service]:
        service = await self.services.get_by_id(service_id)
        if service is None or service.seller_id != identity.user_id:
            return None
        return service

    async def create_service(
        self,
        identity: Optional[Identity],
        data: CreateServiceRequest,
    ) -> ActionResult:
        denied = self.require_verified(identity, "You must verify your ID to create services")
        if denied:
            return denied

        subscription = await self.load_subscription(identity.user_id)
        if subscription is None:
            return ActionResult.fail("Subscription not found")

        max_services = get_max_services(await self.current_plan(identity.user_id))
        if max_services != -1 and subscription.services_used >= max_services:
            return ActionResult.fail(FREE_SERVICE_LIMIT_MESSAGE)

        if await self.categories.get_active(data.category_id) is None:
            return ActionResult.fail("Invalid category")

        service_id = new_id()
        service = await self.services.create(
            Service(
                id=service_id,
                seller_id=identity.user_id,
                category_id=data.category_id,
                title=data.title.strip(),
                slug=f"{slugify(data.title)}-{service_id[:8]}",
                description=data.description.strip(),
                short_description=data.short_description,
                pricing_tiers=build_pricing_tiers(data.basic, data.standard, data.premium),
                tags=data.tags or None,
                delivery_days=data.basic.delivery_days,
                max_revisions=data.max_revisions,
                status=ServiceStatus.ACTIVE.value,
                is_active=True,
            )
        )
        await self.subscriptions.increment_usage(identity.user_id, "services_used")

        logger.info(f"User {identity.user_id} created service {service.id}")
        return ActionResult.ok(service_id=service.id, slug=service.slug)

    async def update_service(
        self,
        identity: Optional[Identity],
        service_id: str,
        data: UpdateServiceRequest,
    ) -> ActionResult:
        denied = self.require_identity(identity)
        if denied:
            return denied

        service = await self._owned(identity, service_id)
        if service is None:
            return ActionResult.fail("Service not found")

        if data.category_id and await self.categories.get_active(data.category_id) is None:
            return ActionResult.fail("Invalid category")

        if data.title:
            service.title = data.title.strip()
            service.slug = f"{slugify(data.title)}-{service.id[:8]}"
        if data.category_id:
            service.category_id = data.category_id
        if data.description:
            service.description = data.description.strip()
        if data.short_description is not None:
            service.short_description = data.short_description.strip()
        if data.tags is not None:
            service.tags = data.tags
        if data.basic is not None:
            existing = service.pricing_tiers or {}
            tiers = {"basic": data.basic.model_dump()}
            for name, tier in (("standard", data.standard), ("premium", data.premium)):
                if tier is not None:
                    tiers[name] = tier.model_dump()
                elif name in existing:
                    tiers[name] = existing[name]
            service.pricing_tiers = tiers
            service.delivery_days = data.basic.delivery_days

        await self.services.save(service)
        return ActionResult.ok(service_id=service.id, slug=service.slug)

    async def toggle_service_status(self, identity: Optional[Identity], service_id: str) -> ActionResult:
        denied = self.require_identity(identity)
        if denied:
            return denied

        service = await self._owned(identity, service_id)
        if service is None:
            return ActionResult.fail("Service not found")

        service.is_active = not service.is_active
        await self.services.save(service)
        return ActionResult.ok(service_id=service.id, is_active=service.is_active)

    async def delete_service(self, identity: Optional[Identity], service_id: str) -> ActionResult:
        denied = self.require_identity(identity)
        if denied:
            return denied

        service = await self._owned(identity, service_id)
        if service is None:
            return ActionResult.fail("Service not found")

        open_orders = await self.orders.count_where(
            Order.service_id == service.id,
            Order.status.not_in(CLOSED_ORDER_STATUSES),
        )
        if open_orders:
            return ActionResult.fail("Service has active orders and cannot be deleted")

        await self.services.delete(service.id)
        await self.subscriptions.increment_usage(identity.user_id, "services_used", -1)
        return ActionResult.ok()

    async def get_user_services(self, identity: Optional[Identity]) -> ActionResult:
        denied = self.require_identity(identity)
        if denied:
            return denied
        services = await self.services.list_by_seller(identity.user_id)
        return ActionResult.ok(services=[s.model_dump() for s in services])

    async def get_service_by_slug(self, slug: str) -> ActionResult:
        service = await self.services.get_active_by_slug(slug)
        if service is None:
            return ActionResult.fail("Service not found")
        await self.services.increment_views(service.id)
        return ActionResult.ok(service=service.model_dump())

    async def get_categories(self) -> ActionResult:
        categories = await self.categories.list_active()
        return ActionResult.ok(categories=[c.model_dump() for c in categories])
