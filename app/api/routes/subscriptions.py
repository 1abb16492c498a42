"""
Subscription API Routes

Plan status, Pro checkout, mock checkout confirmation, cancellation and usage.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from app.actions.subscriptions import SubscriptionActions
from app.api.dependencies import IdentityDep, NotifierDep, PayFastGatewayDep, action_response
from app.domain.payments import cents_to_rands
from app.domain.subscription import (
    PLAN_FEATURES,
    PLAN_PRICES,
    ConfirmSubscriptionRequest,
    CreateCheckoutRequest,
    SubscriptionPlan,
)
from app.infrastructure.db.dependencies import SessionDep


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/subscriptions")


def get_subscription_actions(
    session: SessionDep,
    notifier: NotifierDep,
    gateway: PayFastGatewayDep,
) -> SubscriptionActions:
    return SubscriptionActions(session, notifier, gateway=gateway)


SubscriptionActionsDep = Annotated[SubscriptionActions, Depends(get_subscription_actions)]


@router.get("")
async def get_subscription(identity: IdentityDep, actions: SubscriptionActionsDep):
    return action_response(await actions.get_subscription(identity))


@router.get("/usage")
async def get_usage(identity: IdentityDep, actions: SubscriptionActionsDep):
    return action_response(await actions.get_usage(identity))


@router.get("/pricing")
async def get_pricing():
    """Public plan prices (ZAR cents) and features."""
    return {
        "currency": "ZAR",
        "plans": [
            {
                "plan": plan.value,
                "price": PLAN_PRICES.get(plan, 0),
                "price_display": f"R{cents_to_rands(PLAN_PRICES.get(plan, 0))}",
                "features": PLAN_FEATURES[plan],
            }
            for plan in SubscriptionPlan
        ],
    }


@router.post("/checkout")
async def create_checkout(
    body: CreateCheckoutRequest,
    identity: IdentityDep,
    actions: SubscriptionActionsDep,
):
    return action_response(await actions.create_checkout(identity, body.plan))


@router.post("/confirm")
async def confirm_subscription(
    body: ConfirmSubscriptionRequest,
    identity: IdentityDep,
    actions: SubscriptionActionsDep,
):
    """Complete a mock checkout while PayFast is unconfigured or in sandbox."""
    return action_response(await actions.confirm_subscription(identity, body.plan, body.reference))


@router.post("/cancel")
async def cancel_subscription(identity: IdentityDep, actions: SubscriptionActionsDep):
    return action_response(await actions.cancel_subscription(identity))


@router.post("/reactivate")
async def reactivate_subscription(identity: IdentityDep, actions: SubscriptionActionsDep):
    return action_response(await actions.reactivate_subscription(identity))
