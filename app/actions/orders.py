"""
Order Actions

Orders are created from a service tier or an accepted bid, funded through
a payment gateway, delivered by the seller and accepted by the buyer, which
releases escrow to the seller.
"""

import logging
from datetime import timedelta
from typing import Optional

from app.actions.base import BaseActions
from app.domain.marketplace import (
    BidStatus,
    CreateOrderFromBidRequest,
    CreateOrderFromServiceRequest,
    MilestoneStatus,
    OrderStatus,
    OrderType,
    TransactionStatus,
    TransactionType,
)
from app.domain.models import ActionResult, Identity
from app.domain.notifications import NotificationCreate, NotificationType
from app.domain.payments import CURRENCY, calculate_fees, cents_to_rands, generate_order_number
from app.infrastructure.db.models.base import utcnow
from app.infrastructure.db.models.order import Milestone, Order
from app.infrastructure.db.models.transaction import Transaction
from app.infrastructure.db.repositories.catalog_repository import ServiceRepository
from app.infrastructure.db.repositories.order_repository import MilestoneRepository, OrderRepository
from app.infrastructure.db.repositories.project_repository import BidRepository, ProjectRepository
from app.infrastructure.db.repositories.transaction_repository import TransactionRepository


logger = logging.getLogger(__name__)

CANCELLABLE_STATUSES = (
    OrderStatus.PENDING_PAYMENT.value,
    OrderStatus.PENDING_REQUIREMENTS.value,
)

DELIVERABLE_STATUSES = (
    OrderStatus.IN_PROGRESS.value,
    OrderStatus.REVISION_REQUESTED.value,
)

REQUIREMENTS_STATUSES = (
    OrderStatus.PENDING_PAYMENT.value,
    OrderStatus.PENDING_REQUIREMENTS.value,
    OrderStatus.IN_PROGRESS.value,
)


class OrderActions(BaseActions):
    """Order lifecycle from creation to escrow release."""

    def __init__(self, session, notifier=None):
        super().__init__(session, notifier)
        self.orders = OrderRepository(session)
        self.milestones = MilestoneRepository(session)
        self.services = ServiceRepository(session)
        self.projects = ProjectRepository(session)
        self.bids = BidRepository(session)
        self.transactions = TransactionRepository(session)

    async def _notify_order_created(self, order: Order, title: str) -> None:
        await self.notifier.notify(
            NotificationCreate(
                user_id=order.seller_id,
                type=NotificationType.ORDER_CREATED,
                title="New Order Received",
                message=(
                    f"You have a new order {order.order_number} for \"{title}\". "
                    "Work starts once the buyer has paid."
                ),
                entity_type="order",
                entity_id=order.id,
            )
        )

    # =========================================================================
    # Creation
    # =========================================================================

    async def create_order_from_service(
        self,
        identity: Optional[Identity],
        data: CreateOrderFromServiceRequest,
    ) -> ActionResult:
        denied = self.require_identity(identity)
        if denied:
            return denied

        service = await self.services.get_by_id(data.service_id)
        if service is None or not service.is_active:
            return ActionResult.fail("Service not found")
        if service.seller_id == identity.user_id:
            return ActionResult.fail("You cannot purchase your own service")

        tier = (service.pricing_tiers or {}).get(data.service_tier.value)
        if not tier:
            return ActionResult.fail("Selected tier not available")

        subtotal = int(tier["price"])
        delivery_days = int(tier.get("delivery_days") or service.delivery_days)
        fees = calculate_fees(subtotal)
        now = utcnow()

        order = await self.orders.create(
            Order(
                order_number=generate_order_number(),
                buyer_id=identity.user_id,
                seller_id=service.seller_id,
                order_type=OrderType.SERVICE.value,
                service_id=service.id,
                service_tier=data.service_tier.value,
                requirements=data.requirements,
                subtotal=subtotal,
                buyer_fee=fees.buyer_fee,
                seller_fee=fees.seller_fee,
                total_amount=fees.buyer_total,
                seller_earnings=fees.seller_receives,
                currency=CURRENCY,
                delivery_days=delivery_days,
                delivery_deadline=now + timedelta(days=delivery_days),
                revisions_allowed=int(tier.get("revisions", service.max_revisions)),
                status=OrderStatus.PENDING_PAYMENT.value,
            )
        )

        service.order_count += 1
        await self.services.save(service)
        await self._notify_order_created(order, service.title)

        logger.info(f"Created service order {order.order_number} for buyer {identity.user_id}")
        return ActionResult.ok(order_id=order.id, order_number=order.order_number)

    async def create_order_from_bid(
        self,
        identity: Optional[Identity],
        data: CreateOrderFromBidRequest,
    ) -> ActionResult:
        denied = self.require_identity(identity)
        if denied:
            return denied
        if not data.milestones:
            return ActionResult.fail("At least one milestone is required")

        bid = await self.bids.get_by_id(data.bid_id)
        if bid is None:
            return ActionResult.fail("Bid not found")

        project = await self.projects.get_by_id(bid.project_id)
        if project is None:
            return ActionResult.fail("Project not found")
        if project.buyer_id != identity.user_id:
            return ActionResult.fail("You don't own this project")

        subtotal = sum(m.amount for m in data.milestones)
        fees = calculate_fees(subtotal)
        now = utcnow()

        order = await self.orders.create(
            Order(
                order_number=generate_order_number(),
                buyer_id=identity.user_id,
                seller_id=bid.bidder_id,
                order_type=OrderType.PROJECT.value,
                project_id=project.id,
                bid_id=bid.id,
                subtotal=subtotal,
                buyer_fee=fees.buyer_fee,
                seller_fee=fees.seller_fee,
                total_amount=fees.buyer_total,
                seller_earnings=fees.seller_receives,
                currency=CURRENCY,
                delivery_days=bid.delivery_days,
                delivery_deadline=now + timedelta(days=bid.delivery_days),
                status=OrderStatus.PENDING_PAYMENT.value,
            )
        )
        await self.milestones.create_many(
            [
                Milestone(
                    order_id=order.id,
                    title=m.title,
                    description=m.description,
                    amount=m.amount,
                    sort_order=index,
                    due_date=m.due_date,
                    status=MilestoneStatus.PENDING.value,
                )
                for index, m in enumerate(data.milestones, start=1)
            ]
        )

        if bid.status != BidStatus.ACCEPTED.value:
            bid.status = BidStatus.ACCEPTED.value
            await self.bids.save(bid)

        await self._notify_order_created(order, project.title)
        return ActionResult.ok(order_id=order.id, order_number=order.order_number)

    # =========================================================================
    # Queries
    # =========================================================================

    async def get_user_orders(self, identity: Optional[Identity]) -> ActionResult:
        denied = self.require_identity(identity)
        if denied:
            return denied
        orders = await self.orders.list_for_user(identity.user_id)
        return ActionResult.ok(orders=[o.model_dump() for o in orders])

    async def get_order_by_id(self, identity: Optional[Identity], order_id: str) -> ActionResult:
        denied = self.require_identity(identity)
        if denied:
            return denied

        order = await self.orders.get_for_participant(order_id, identity.user_id)
        if order is None:
            return ActionResult.fail("Order not found")

        milestones = await self.milestones.list_by_order(order.id)
        return ActionResult.ok(
            order=order.model_dump(),
            milestones=[m.model_dump() for m in milestones],
            is_buyer=order.buyer_id == identity.user_id,
        )

    # =========================================================================
    # Delivery workflow
    # =========================================================================

    async def submit_requirements(
        self,
        identity: Optional[Identity],
        order_id: str,
        requirements: str,
    ) -> ActionResult:
        """
        Buyer's brief for the seller.

        Accepted until work is delivered. An order parked in
        pending_requirements starts once the brief arrives.
        """
        denied = self.require_identity(identity)
        if denied:
            return denied

        order = await self.orders.get_by_id(order_id)
        if order is None or order.buyer_id != identity.user_id:
            return ActionResult.fail("Unauthorized")
        if order.status not in REQUIREMENTS_STATUSES:
            return ActionResult.fail("Order is not awaiting requirements")

        order.requirements = requirements.strip()
        if order.status == OrderStatus.PENDING_REQUIREMENTS.value:
            order.status = OrderStatus.IN_PROGRESS.value
        await self.orders.save(order)

        await self.notifier.notify(
            NotificationCreate(
                user_id=order.seller_id,
                type=NotificationType.SYSTEM,
                title="Requirements Submitted",
                message=f"The buyer submitted requirements for order {order.order_number}.",
                entity_type="order",
                entity_id=order.id,
            )
        )
        return ActionResult.ok(order_id=order.id, status=order.status)

    async def submit_delivery(
        self,
        identity: Optional[Identity],
        order_id: str,
        message: str,
        milestone_id: Optional[str] = None,
    ) -> ActionResult:
        """Seller hands in work for the order or one funded milestone."""
        denied = self.require_identity(identity)
        if denied:
            return denied

        order = await self.orders.get_by_id(order_id)
        if order is None or order.seller_id != identity.user_id:
            return ActionResult.fail("Unauthorized")
        if order.status not in DELIVERABLE_STATUSES:
            return ActionResult.fail("Order is not in progress")

        now = utcnow()
        delivery_title = "Order Delivery"
        if milestone_id:
            milestone = await self.milestones.get_for_order(milestone_id, order.id)
            if milestone is None:
                return ActionResult.fail("Milestone not found")
            if milestone.status not in (MilestoneStatus.FUNDED.value, MilestoneStatus.IN_PROGRESS.value):
                return ActionResult.fail("Milestone is not funded")
            milestone.status = MilestoneStatus.SUBMITTED.value
            milestone.submitted_at = now
            await self.milestones.save(milestone)
            delivery_title = milestone.title

        order.status = OrderStatus.DELIVERED.value
        order.delivered_at = now
        order.delivery_message = message
        await self.orders.save(order)

        await self.notifier.notify(
            NotificationCreate(
                user_id=order.buyer_id,
                type=NotificationType.ORDER_DELIVERED,
                title="Order Delivered",
                message=f"{delivery_title} for order {order.order_number} has been delivered. Please review it.",
                entity_type="order",
                entity_id=order.id,
                send_email=True,
                email_data={"order_number": order.order_number},
            )
        )
        return ActionResult.ok(order_id=order.id)

    async def _release(self, order: Order, amount: int, milestone_id: Optional[str] = None) -> None:
        now = utcnow()
        await self.transactions.create(
            Transaction(
                order_id=order.id,
                milestone_id=milestone_id,
                user_id=order.seller_id,
                type=TransactionType.ESCROW_RELEASE.value,
                amount=amount,
                currency=order.currency,
                provider="manual",
                status=TransactionStatus.COMPLETED.value,
                completed_at=now,
            )
        )

    async def accept_delivery(
        self,
        identity: Optional[Identity],
        order_id: str,
        milestone_id: Optional[str] = None,
    ) -> ActionResult:
        """Buyer accepts delivered work, releasing escrow to the seller."""
        denied = self.require_identity(identity)
        if denied:
            return denied

        order = await self.orders.get_by_id(order_id)
        if order is None or order.buyer_id != identity.user_id:
            return ActionResult.fail("Unauthorized")
        if order.status != OrderStatus.DELIVERED.value:
            return ActionResult.fail("Order has not been delivered")

        now = utcnow()
        if milestone_id:
            milestone = await self.milestones.get_for_order(milestone_id, order.id)
            if milestone is None or milestone.status != MilestoneStatus.SUBMITTED.value:
                return ActionResult.fail("Milestone not delivered")

            await self._release(order, milestone.amount, milestone.id)
            milestone.status = MilestoneStatus.RELEASED.value
            milestone.released_at = now
            await self.milestones.save(milestone)

            remaining = [
                m for m in await self.milestones.list_by_order(order.id)
                if m.id != milestone.id and m.status != MilestoneStatus.RELEASED.value
            ]
            if remaining:
                order.status = OrderStatus.IN_PROGRESS.value
            else:
                order.status = OrderStatus.COMPLETED.value
                order.completed_at = now
            released = milestone.amount
        else:
            await self._release(order, order.seller_earnings)
            order.status = OrderStatus.COMPLETED.value
            order.completed_at = now
            released = order.seller_earnings

        await self.orders.save(order)

        await self.notifier.notify(
            NotificationCreate(
                user_id=order.seller_id,
                type=NotificationType.ORDER_COMPLETED,
                title="Payment Released",
                message=(
                    f"R{cents_to_rands(released)} for order {order.order_number} "
                    "has been released to you."
                ),
                entity_type="order",
                entity_id=order.id,
                send_email=True,
                email_data={"order_number": order.order_number},
            )
        )
        return ActionResult.ok(order_id=order.id, status=order.status)

    async def request_revision(
        self,
        identity: Optional[Identity],
        order_id: str,
        reason: str,
        details: Optional[str] = None,
    ) -> ActionResult:
        denied = self.require_identity(identity)
        if denied:
            return denied

        order = await self.orders.get_by_id(order_id)
        if order is None or order.buyer_id != identity.user_id:
            return ActionResult.fail("Unauthorized")
        if order.status != OrderStatus.DELIVERED.value:
            return ActionResult.fail("Order has not been delivered")
        if order.revisions_used >= order.revisions_allowed:
            return ActionResult.fail("No revisions remaining")

        order.status = OrderStatus.REVISION_REQUESTED.value
        order.revisions_used += 1
        order.revision_reason = f"{reason}\n\n{details}" if details else reason
        await self.orders.save(order)

        await self.notifier.notify(
            NotificationCreate(
                user_id=order.seller_id,
                type=NotificationType.SYSTEM,
                title="Revision Requested",
                message=f"The buyer requested a revision on order {order.order_number}: {reason}",
                entity_type="order",
                entity_id=order.id,
            )
        )
        return ActionResult.ok(order_id=order.id, revisions_used=order.revisions_used)

    async def cancel_order(
        self,
        identity: Optional[Identity],
        order_id: str,
        reason: str = "",
    ) -> ActionResult:
        """Either party may cancel before work starts."""
        denied = self.require_identity(identity)
        if denied:
            return denied

        order = await self.orders.get_by_id(order_id)
        if order is None:
            return ActionResult.fail("Order not found")
        if identity.user_id not in (order.buyer_id, order.seller_id):
            return ActionResult.fail("Unauthorized")
        if order.status not in CANCELLABLE_STATUSES:
            return ActionResult.fail("Order cannot be cancelled at this stage")

        order.status = OrderStatus.CANCELLED.value
        order.cancelled_by = identity.user_id
        order.cancellation_reason = reason or None
        await self.orders.save(order)

        other_party = order.seller_id if identity.user_id == order.buyer_id else order.buyer_id
        await self.notifier.notify(
            NotificationCreate(
                user_id=other_party,
                type=NotificationType.ORDER_CANCELLED,
                title="Order Cancelled",
                message=f"Order {order.order_number} was cancelled.",
                entity_type="order",
                entity_id=order.id,
            )
        )
        return ActionResult.ok(order_id=order.id)
