"""
Subscription Actions

Plan status, PayFast checkout for Pro plans, cancellation and usage against
plan limits. Live payments are activated by payment reconciliation; the mock
checkout is completed through confirm_subscription.
"""

import logging
from typing import Optional
from urllib.parse import urlencode

from app.actions.base import BaseActions
from app.config.settings import get_settings
from app.domain.marketplace import TransactionType
from app.domain.models import ActionResult, Identity
from app.domain.notifications import NotificationCreate, NotificationType
from app.domain.payments import (
    CURRENCY,
    SUBSCRIPTION_PREFIX,
    PaymentProvider,
    PaymentRequest,
    generate_subscription_reference,
)
from app.domain.subscription import (
    PLAN_FEATURES,
    PLAN_PRICES,
    SubscriptionPlan,
    SubscriptionStatus,
    SubscriptionView,
    UsageView,
    compute_period_end,
    get_max_bids,
    get_max_services,
)
from app.infrastructure.db.models.base import utcnow
from app.infrastructure.db.repositories.transaction_repository import TransactionRepository
from app.infrastructure.db.repositories.user_repository import UserRepository
from app.infrastructure.payments import PayFastGateway


logger = logging.getLogger(__name__)

MOCK_CHECKOUT_PATH = "/dashboard/subscription/checkout"


class SubscriptionActions(BaseActions):
    """
    Subscription management for the logged-in user.

    Args:
        session: Async database session
        notifier: Notification emitter
        gateway: PayFast adapter (injectable for tests)
    """

    def __init__(self, session, notifier=None, gateway: Optional[PayFastGateway] = None):
        super().__init__(session, notifier)
        self.users = UserRepository(session)
        self.transactions = TransactionRepository(session)
        self.gateway = gateway or PayFastGateway()

    async def get_subscription(self, identity: Optional[Identity]) -> ActionResult:
        denied = self.require_identity(identity)
        if denied:
            return denied

        subscription = await self.load_subscription(identity.user_id)
        if subscription is None:
            return ActionResult.fail("Subscription not found")

        is_free = subscription.plan == SubscriptionPlan.FREE.value
        days_remaining = None
        if not is_free and subscription.current_period_end is not None:
            days_remaining = max((subscription.current_period_end - utcnow()).days, 0)

        view = SubscriptionView(
            plan=subscription.plan,
            status=subscription.status,
            bids_used=subscription.bids_used,
            services_used=subscription.services_used,
            current_period_start=subscription.current_period_start,
            current_period_end=subscription.current_period_end,
            cancelled_at=subscription.cancelled_at,
            days_remaining=days_remaining,
            can_upgrade=await self.current_plan(identity.user_id) == SubscriptionPlan.FREE.value,
            can_cancel=(
                not is_free
                and subscription.status == SubscriptionStatus.ACTIVE.value
                and subscription.cancelled_at is None
            ),
        )
        return ActionResult.ok(subscription=view.model_dump(mode="json"))

    async def create_checkout(
        self,
        identity: Optional[Identity],
        plan: SubscriptionPlan,
        base_url: Optional[str] = None,
    ) -> ActionResult:
        """
        Start a Pro checkout.

        Returns ``data["checkout_url"]`` and ``data["reference"]``. When PayFast
        is unconfigured or in sandbox mode the URL points at the local mock
        checkout page instead of the gateway.

        A live checkout also carries ``data["checkout_form"]``, an auto-submitting
        form for clients that post to PayFast instead of redirecting.
        """
        denied = self.require_identity(identity)
        if denied:
            return denied
        if plan not in PLAN_PRICES:
            return ActionResult.fail("Invalid plan")

        if await self.has_pro(identity.user_id):
            return ActionResult.fail("You already have an active subscription")

        settings = get_settings()
        base_url = (base_url or settings.app_url).rstrip("/")
        amount = PLAN_PRICES[plan]
        reference = generate_subscription_reference(plan.value, identity.user_id)

        if not settings.payfast_configured or settings.payfast_sandbox:
            query = urlencode({"plan": plan.value, "ref": reference, "amount": amount})
            logger.info(f"[PAYFAST] Mock checkout for {identity.user_id} ({plan.value})")
            return ActionResult.ok(
                checkout_url=f"{base_url}{MOCK_CHECKOUT_PATH}?{query}",
                reference=reference,
            )

        user = await self.users.get_by_id(identity.user_id)
        label = "Annual" if plan == SubscriptionPlan.ANNUAL else "Monthly"
        request = PaymentRequest(
            reference=reference,
            amount=amount,
            description=f"Zomieks Pro {label}",
            buyer_email=user.email if user else identity.email,
            buyer_name=(user.name if user else identity.name) or None,
            user_id=identity.user_id,
            plan=plan.value,
        )
        result = await self.gateway.initiate(request, base_url)
        if not result.success or not result.redirect_url:
            logger.warning(f"[PAYFAST] Checkout for {identity.user_id} failed: {result.error}")
            return ActionResult.fail(result.error or "Failed to create checkout")

        return ActionResult.ok(
            checkout_url=result.redirect_url,
            checkout_form=self.gateway.build_form_html(request, base_url),
            reference=reference,
        )

    async def confirm_subscription(
        self,
        identity: Optional[Identity],
        plan: SubscriptionPlan,
        reference: str,
    ) -> ActionResult:
        """
        Complete a mock checkout.

        Only available while PayFast is unconfigured or in sandbox mode; live
        payments are activated by the ITN webhook. Records the completed
        subscription payment once per reference and activates the plan.
        """
        denied = self.require_identity(identity)
        if denied:
            return denied
        if plan not in PLAN_PRICES:
            return ActionResult.fail("Invalid plan")

        settings = get_settings()
        if settings.payfast_configured and not settings.payfast_sandbox:
            return ActionResult.fail("Subscriptions are confirmed by the payment provider")

        expected_prefix = f"{SUBSCRIPTION_PREFIX}{plan.value.upper()}-"
        if not reference.startswith(expected_prefix) or not reference.endswith(
            f"-{identity.user_id[:8]}"
        ):
            return ActionResult.fail("Invalid payment reference")

        if await self.transactions.is_settled(reference):
            return ActionResult.fail("Payment already processed")

        existing = await self.load_subscription(identity.user_id)
        recorded = await self.transactions.record_completed(
            reference,
            {
                "user_id": identity.user_id,
                "type": TransactionType.SUBSCRIPTION.value,
                "amount": PLAN_PRICES[plan],
                "currency": CURRENCY,
                "provider": PaymentProvider.PAYFAST.value,
                "subscription_id": existing.id if existing else None,
            },
        )
        if not recorded:
            return ActionResult.fail("Payment already processed")

        now = utcnow()
        period_end = compute_period_end(plan, now)
        subscription = await self.subscriptions.activate_plan(
            user_id=identity.user_id,
            plan=plan,
            period_start=now,
            period_end=period_end,
            payment_reference=reference,
        )
        if existing is None and subscription is not None:
            await self.transactions.attach_subscription(reference, subscription.id)

        label = "Annual" if plan == SubscriptionPlan.ANNUAL else "Monthly"
        await self.notifier.notify(
            NotificationCreate(
                user_id=identity.user_id,
                type=NotificationType.SYSTEM,
                title="Subscription Activated!",
                message=(
                    f"Your Zomieks Pro {label} subscription is now active until "
                    f"{period_end.strftime('%d %B %Y')}."
                ),
                entity_type="subscription",
                entity_id=subscription.id if subscription else None,
                send_email=True,
            )
        )

        logger.info(f"[PAYFAST] Mock checkout {reference} confirmed for {identity.user_id}")
        return ActionResult.ok(plan=plan.value, current_period_end=period_end)

    async def cancel_subscription(self, identity: Optional[Identity]) -> ActionResult:
        """Stops renewal. The plan stays usable until the period ends."""
        denied = self.require_identity(identity)
        if denied:
            return denied

        subscription = await self.load_subscription(identity.user_id)
        if subscription is None:
            return ActionResult.fail("Subscription not found")
        if subscription.plan == SubscriptionPlan.FREE.value:
            return ActionResult.fail("Cannot cancel free plan")
        if subscription.cancelled_at is not None:
            return ActionResult.fail("Subscription is already cancelled")

        subscription.cancelled_at = utcnow()
        await self.subscriptions.save(subscription)

        logger.info(f"Subscription {subscription.id} cancelled by {identity.user_id}")
        return ActionResult.ok(active_until=subscription.current_period_end)

    async def reactivate_subscription(self, identity: Optional[Identity]) -> ActionResult:
        denied = self.require_identity(identity)
        if denied:
            return denied

        subscription = await self.load_subscription(identity.user_id)
        if subscription is None or subscription.cancelled_at is None:
            return ActionResult.fail("Subscription is not cancelled")
        if not await self.has_pro(identity.user_id):
            return ActionResult.fail("Subscription has expired. Please subscribe again.")

        subscription.cancelled_at = None
        await self.subscriptions.save(subscription)
        return ActionResult.ok()

    async def get_usage(self, identity: Optional[Identity]) -> ActionResult:
        denied = self.require_identity(identity)
        if denied:
            return denied

        subscription = await self.load_subscription(identity.user_id)
        plan = await self.current_plan(identity.user_id)
        features = PLAN_FEATURES[SubscriptionPlan(plan)]

        usage = UsageView(
            plan=plan,
            bids_used=subscription.bids_used if subscription else 0,
            bids_limit=get_max_bids(plan),
            services_used=subscription.services_used if subscription else 0,
            services_limit=get_max_services(plan),
            can_outsource=features["can_outsource"],
            can_shortlist=features["can_shortlist"],
        )
        return ActionResult.ok(usage=usage.model_dump(mode="json"))
