"""
Order Routes

Order creation, requirements, delivery, acceptance, revisions and cancellation.
Funding goes through ``/payments/initiate``.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from app.actions.orders import OrderActions
from app.api.dependencies import IdentityDep, NotifierDep, action_response
from app.domain.marketplace import (
    AcceptDeliveryRequest,
    CancelOrderRequest,
    CreateOrderFromBidRequest,
    CreateOrderFromServiceRequest,
    RevisionRequest,
    SubmitDeliveryRequest,
    SubmitRequirementsRequest,
)
from app.infrastructure.db.dependencies import SessionDep


router = APIRouter(prefix="/orders")


def get_order_actions(session: SessionDep, notifier: NotifierDep) -> OrderActions:
    return OrderActions(session, notifier)


OrderActionsDep = Annotated[OrderActions, Depends(get_order_actions)]


@router.get("")
async def my_orders(identity: IdentityDep, actions: OrderActionsDep):
    """Orders where the caller is buyer or seller."""
    return action_response(await actions.get_user_orders(identity))


@router.post("/from-service")
async def order_service(
    body: CreateOrderFromServiceRequest,
    identity: IdentityDep,
    actions: OrderActionsDep,
):
    result = await actions.create_order_from_service(identity, body)
    return action_response(result, status_code=status.HTTP_201_CREATED)


@router.post("/from-bid")
async def order_from_bid(
    body: CreateOrderFromBidRequest,
    identity: IdentityDep,
    actions: OrderActionsDep,
):
    result = await actions.create_order_from_bid(identity, body)
    return action_response(result, status_code=status.HTTP_201_CREATED)


@router.get("/{order_id}")
async def get_order(order_id: str, identity: IdentityDep, actions: OrderActionsDep):
    return action_response(await actions.get_order_by_id(identity, order_id))


@router.post("/{order_id}/requirements")
async def submit_requirements(
    order_id: str,
    body: SubmitRequirementsRequest,
    identity: IdentityDep,
    actions: OrderActionsDep,
):
    return action_response(await actions.submit_requirements(identity, order_id, body.requirements))


@router.post("/{order_id}/deliver")
async def submit_delivery(
    order_id: str,
    body: SubmitDeliveryRequest,
    identity: IdentityDep,
    actions: OrderActionsDep,
):
    result = await actions.submit_delivery(identity, order_id, body.message, body.milestone_id)
    return action_response(result)


@router.post("/{order_id}/accept")
async def accept_delivery(
    order_id: str,
    body: AcceptDeliveryRequest,
    identity: IdentityDep,
    actions: OrderActionsDep,
):
    return action_response(await actions.accept_delivery(identity, order_id, body.milestone_id))


@router.post("/{order_id}/revision")
async def request_revision(
    order_id: str,
    body: RevisionRequest,
    identity: IdentityDep,
    actions: OrderActionsDep,
):
    result = await actions.request_revision(identity, order_id, body.reason, body.details)
    return action_response(result)


@router.post("/{order_id}/cancel")
async def cancel_order(
    order_id: str,
    body: CancelOrderRequest,
    identity: IdentityDep,
    actions: OrderActionsDep,
):
    return action_response(await actions.cancel_order(identity, order_id, body.reason))
