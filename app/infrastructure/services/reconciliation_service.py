"""
Payment Reconciliation Service

Applies verified gateway notifications to the database.

A notification is classified once into a PaymentKind and settled by the
matching handler:
- SUBSCRIPTION: activate or extend the user's plan
- ESCROW_FUNDING: fund the order (and milestone) and start the work
- UNRECOGNIZED: logged and acknowledged, nothing is written

Settlement is idempotent per provider reference: a completed ledger row
short-circuits redelivery, and the ledger insert itself is conflict-safe so
two racing deliveries cannot both apply side effects.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.marketplace import MilestoneStatus, OrderStatus, TransactionType
from app.domain.notifications import NotificationCreate, NotificationType
from app.domain.payments import (
    CURRENCY,
    PaymentKind,
    PaymentStatus,
    WebhookNotification,
    cents_to_rands,
    classify_payment,
    plan_from_reference,
)
from app.domain.subscription import SubscriptionPlan, compute_period_end, parse_plan
from app.infrastructure.db.models.base import utcnow
from app.infrastructure.db.models.order import Order
from app.infrastructure.db.repositories.order_repository import MilestoneRepository, OrderRepository
from app.infrastructure.db.repositories.subscription_repository import SubscriptionRepository
from app.infrastructure.db.repositories.transaction_repository import TransactionRepository
from app.infrastructure.services.notification_service import NotificationService


logger = logging.getLogger(__name__)


@dataclass
class ReconciliationResult:
    """What a notification did."""
    kind: PaymentKind
    applied: bool = False
    duplicate: bool = False
    detail: Optional[str] = None


class PaymentReconciliationService:
    """
    Settles subscription and escrow payments.

    Args:
        session: Async database session (the caller commits)
        notifier: Notification emitter sharing the same session
    """

    def __init__(self, session: AsyncSession, notifier: Optional[NotificationService] = None):
        self.session = session
        self.transactions = TransactionRepository(session)
        self.subscriptions = SubscriptionRepository(session)
        self.orders = OrderRepository(session)
        self.milestones = MilestoneRepository(session)
        self.notifier = notifier or NotificationService(session)

    async def reconcile(
        self,
        notification: WebhookNotification,
        now: Optional[datetime] = None,
    ) -> ReconciliationResult:
        """
        Classify a verified notification and settle it.

        Args:
            notification: Normalized, authenticated gateway payload
            now: Settlement time (defaults to the current UTC time)
        """
        now = now or utcnow()
        kind = classify_payment(notification)
        tag = notification.provider.value.upper()

        logger.info(
            f"[RECONCILE] {tag} {notification.reference or '-'} "
            f"status={notification.status.value} kind={kind.value}"
        )

        if kind == PaymentKind.SUBSCRIPTION:
            return await self._settle_subscription(notification, now)
        if kind == PaymentKind.ESCROW_FUNDING:
            return await self._settle_escrow(notification, now)

        logger.warning(
            f"[RECONCILE] {tag} unrecognized payment reference "
            f"'{notification.reference}' (transaction {notification.transaction_id}), ignoring"
        )
        return ReconciliationResult(kind=kind, detail="unrecognized reference")

    # =========================================================================
    # Subscriptions
    # =========================================================================

    async def _settle_subscription(
        self,
        notification: WebhookNotification,
        now: datetime,
    ) -> ReconciliationResult:
        kind = PaymentKind.SUBSCRIPTION
        user_id = notification.custom_1
        plan = parse_plan(notification.custom_2) or parse_plan(
            plan_from_reference(notification.reference)
        )

        if notification.status == PaymentStatus.PENDING:
            logger.info(f"[RECONCILE] Subscription payment {notification.reference} pending")
            return ReconciliationResult(kind=kind, detail="pending")

        if notification.status != PaymentStatus.SUCCESS:
            if user_id:
                await self.notifier.notify(
                    NotificationCreate(
                        user_id=user_id,
                        type=NotificationType.SYSTEM,
                        title="Payment Failed",
                        message="Your subscription payment could not be processed. Please try again.",
                        entity_type="subscription",
                    )
                )
            return ReconciliationResult(kind=kind, detail=notification.status.value)

        if not user_id or plan is None:
            logger.error(
                f"[RECONCILE] Subscription payment {notification.reference} is missing "
                f"user ({user_id}) or plan ({notification.custom_2})"
            )
            return ReconciliationResult(kind=kind, detail="missing user or plan")

        reference = notification.idempotency_key
        if await self.transactions.is_settled(reference):
            logger.info(f"[RECONCILE] Subscription payment {reference} already settled")
            return ReconciliationResult(kind=kind, duplicate=True)

        existing = await self.subscriptions.get_by_user_id(user_id)
        recorded = await self.transactions.record_completed(
            reference,
            {
                "user_id": user_id,
                "type": TransactionType.SUBSCRIPTION.value,
                "amount": notification.amount,
                "currency": CURRENCY,
                "provider": notification.provider.value,
                "provider_transaction_id": notification.transaction_id or None,
                "subscription_id": existing.id if existing else None,
            },
        )
        if not recorded:
            logger.info(f"[RECONCILE] Subscription payment {reference} settled concurrently")
            return ReconciliationResult(kind=kind, duplicate=True)

        period_end = compute_period_end(plan, now)
        subscription = await self.subscriptions.activate_plan(
            user_id=user_id,
            plan=plan,
            period_start=now,
            period_end=period_end,
            payment_reference=notification.transaction_id or reference,
        )
        if existing is None and subscription is not None:
            await self.transactions.attach_subscription(reference, subscription.id)

        plan_label = "Annual" if plan == SubscriptionPlan.ANNUAL else "Monthly"
        await self.notifier.notify(
            NotificationCreate(
                user_id=user_id,
                type=NotificationType.SYSTEM,
                title="Subscription Activated!",
                message=(
                    f"Your Zomieks Pro {plan_label} subscription is now active until "
                    f"{period_end.strftime('%d %B %Y')}."
                ),
                entity_type="subscription",
                entity_id=subscription.id if subscription else None,
            )
        )

        logger.info(f"[RECONCILE] Activated {plan.value} plan for user {user_id} until {period_end.isoformat()}")
        return ReconciliationResult(kind=kind, applied=True)

    # =========================================================================
    # Escrow funding
    # =========================================================================

    async def _find_order(self, notification: WebhookNotification) -> Optional[Order]:
        order_id = notification.order_id
        if not order_id and notification.reference:
            pending = await self.transactions.get_by_reference(notification.reference)
            if pending is not None:
                order_id = pending.order_id
        if not order_id:
            return None
        return await self.orders.get_by_id(order_id)

    async def _settle_escrow(
        self,
        notification: WebhookNotification,
        now: datetime,
    ) -> ReconciliationResult:
        kind = PaymentKind.ESCROW_FUNDING
        reference = notification.idempotency_key

        if notification.status == PaymentStatus.PENDING:
            logger.info(f"[RECONCILE] Escrow payment {reference} pending")
            return ReconciliationResult(kind=kind, detail="pending")

        order = await self._find_order(notification)
        if order is None:
            logger.error(f"[RECONCILE] Order {notification.order_id} for payment {reference} not found")
            return ReconciliationResult(kind=kind, detail="order not found")

        if notification.status != PaymentStatus.SUCCESS:
            await self.transactions.mark_failed(
                reference,
                notification.message or f"Payment {notification.status.value}",
            )
            await self.notifier.notify(
                NotificationCreate(
                    user_id=order.buyer_id,
                    type=NotificationType.SYSTEM,
                    title="Payment Failed",
                    message=(
                        f"Your payment for order {order.order_number} was not completed. "
                        "Please try again."
                    ),
                    entity_type="order",
                    entity_id=order.id,
                )
            )
            return ReconciliationResult(kind=kind, detail=notification.status.value)

        if await self.transactions.is_settled(reference):
            logger.info(f"[RECONCILE] Escrow payment {reference} already settled")
            return ReconciliationResult(kind=kind, duplicate=True)

        milestone = None
        if notification.milestone_id:
            milestone = await self.milestones.get_for_order(notification.milestone_id, order.id)

        amount = notification.amount or (milestone.amount if milestone else order.total_amount)
        recorded = await self.transactions.record_completed(
            reference,
            {
                "user_id": order.buyer_id,
                "type": TransactionType.ESCROW_FUND.value,
                "amount": amount,
                "currency": order.currency or CURRENCY,
                "provider": notification.provider.value,
                "provider_transaction_id": notification.transaction_id or None,
                "order_id": order.id,
                "milestone_id": milestone.id if milestone else notification.milestone_id,
            },
        )
        if not recorded:
            logger.info(f"[RECONCILE] Escrow payment {reference} settled concurrently")
            return ReconciliationResult(kind=kind, duplicate=True)

        if milestone is not None and milestone.status == MilestoneStatus.PENDING.value:
            milestone.status = MilestoneStatus.FUNDED.value
            milestone.funded_at = now
            await self.milestones.save(milestone)

        if order.status == OrderStatus.PENDING_PAYMENT.value:
            order.status = OrderStatus.IN_PROGRESS.value
            await self.orders.save(order)

        await self.notifier.notify(
            NotificationCreate(
                user_id=order.buyer_id,
                type=NotificationType.PAYMENT_RECEIVED,
                title="Payment Successful",
                message=(
                    f"Your payment of R{cents_to_rands(amount)} for order "
                    f"{order.order_number} was received and is held in escrow."
                ),
                entity_type="order",
                entity_id=order.id,
                send_email=True,
                email_data={"order_number": order.order_number},
            )
        )
        await self.notifier.notify(
            NotificationCreate(
                user_id=order.seller_id,
                type=NotificationType.ORDER_CREATED,
                title="New Order Started!",
                message=(
                    f"Order {order.order_number} has been funded. You can start working on it now."
                ),
                entity_type="order",
                entity_id=order.id,
                send_email=True,
                email_data={"order_number": order.order_number},
            )
        )

        logger.info(f"[RECONCILE] Funded order {order.id} ({amount} cents) via {reference}")
        return ReconciliationResult(kind=kind, applied=True)
