"""
Payment Actions

Starts escrow funding for an order or milestone with the chosen gateway and
reports the status of a payment reference.
"""

import logging
from typing import Optional

from app.actions.base import BaseActions
from app.config.settings import get_settings
from app.domain.marketplace import MilestoneStatus, OrderStatus, TransactionStatus, TransactionType
from app.domain.models import ActionResult, Identity
from app.domain.payments import (
    CURRENCY,
    MAX_PAYMENT_AMOUNT,
    MIN_PAYMENT_AMOUNT,
    PaymentProvider,
    PaymentRequest,
    generate_payment_reference,
)
from app.infrastructure.db.models.transaction import Transaction
from app.infrastructure.db.repositories.order_repository import MilestoneRepository, OrderRepository
from app.infrastructure.db.repositories.transaction_repository import TransactionRepository
from app.infrastructure.db.repositories.user_repository import UserRepository
from app.infrastructure.payments import OzowGateway, get_gateway


logger = logging.getLogger(__name__)


class PaymentActions(BaseActions):
    """Escrow funding."""

    def __init__(self, session, notifier=None):
        super().__init__(session, notifier)
        self.orders = OrderRepository(session)
        self.milestones = MilestoneRepository(session)
        self.transactions = TransactionRepository(session)
        self.users = UserRepository(session)

    async def initiate_payment(
        self,
        identity: Optional[Identity],
        order_id: str,
        milestone_id: Optional[str] = None,
        provider: str = PaymentProvider.PAYFAST.value,
        base_url: Optional[str] = None,
    ) -> ActionResult:
        """
        Create a pending ledger row and the gateway redirect for it.

        Returns:
            ``data["redirect_url"]`` and ``data["reference"]`` on success
        """
        denied = self.require_identity(identity)
        if denied:
            return denied

        gateway = get_gateway(provider)
        if gateway is None:
            return ActionResult.fail("Invalid payment provider")

        order = await self.orders.get_by_id(order_id)
        if order is None or order.buyer_id != identity.user_id:
            return ActionResult.fail("Order not found")

        if milestone_id:
            milestone = await self.milestones.get_for_order(milestone_id, order.id)
            if milestone is None:
                return ActionResult.fail("Milestone not found")
            if milestone.status != MilestoneStatus.PENDING.value:
                return ActionResult.fail("Milestone already funded")
            amount = milestone.amount
            description = f"Milestone: {milestone.title}"
        else:
            if order.status != OrderStatus.PENDING_PAYMENT.value:
                return ActionResult.fail("Order already paid")
            amount = order.total_amount
            description = f"Order {order.order_number}"

        if amount < MIN_PAYMENT_AMOUNT:
            return ActionResult.fail("Payment amount is below the R50 minimum")
        if amount > MAX_PAYMENT_AMOUNT:
            return ActionResult.fail("Payment amount exceeds the R1,000,000 maximum")

        buyer = await self.users.get_by_id(identity.user_id)
        reference = generate_payment_reference()

        await self.transactions.create(
            Transaction(
                order_id=order.id,
                milestone_id=milestone_id,
                user_id=order.buyer_id,
                type=TransactionType.ESCROW_FUND.value,
                amount=amount,
                currency=CURRENCY,
                provider=gateway.provider.value,
                provider_reference=reference,
                status=TransactionStatus.PENDING.value,
            )
        )

        result = await gateway.initiate(
            PaymentRequest(
                reference=reference,
                amount=amount,
                description=description,
                buyer_email=buyer.email if buyer else identity.email,
                buyer_name=(buyer.name if buyer else identity.name) or None,
                order_id=order.id,
                milestone_id=milestone_id,
            ),
            base_url or get_settings().app_url,
        )

        if not result.success or not result.redirect_url:
            await self.transactions.mark_failed(reference, result.error)
            logger.warning(f"Payment initiation for order {order.id} failed: {result.error}")
            return ActionResult.fail(result.error or "Failed to create payment")

        return ActionResult.ok(redirect_url=result.redirect_url, reference=reference)

    async def get_payment_status(
        self,
        identity: Optional[Identity],
        reference: str,
    ) -> ActionResult:
        """Ledger status of a reference, refreshed from Ozow while still pending."""
        denied = self.require_identity(identity)
        if denied:
            return denied

        transaction = await self.transactions.get_by_reference(reference)
        if transaction is None or transaction.user_id != identity.user_id:
            return ActionResult.fail("Payment not found")

        provider_status = None
        if (
            transaction.status == TransactionStatus.PENDING.value
            and transaction.provider == PaymentProvider.OZOW.value
        ):
            lookup = await OzowGateway().get_transaction_status(reference)
            if lookup.get("success"):
                provider_status = lookup["status"].value

        return ActionResult.ok(
            reference=reference,
            status=transaction.status,
            provider_status=provider_status,
            amount=transaction.amount,
            order_id=transaction.order_id,
            milestone_id=transaction.milestone_id,
        )
