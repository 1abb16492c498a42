"""
Outsourcing Routes

Sellers with a Pro plan delegate work on an active order by invitation.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from app.actions.outsourcing import OutsourcingActions
from app.api.dependencies import IdentityDep, NotifierDep, action_response
from app.domain.marketplace import CreateOutsourceRequest, InviteRequest
from app.infrastructure.db.dependencies import SessionDep


router = APIRouter(prefix="/outsourcing")


def get_outsourcing_actions(session: SessionDep, notifier: NotifierDep) -> OutsourcingActions:
    return OutsourcingActions(session, notifier)


OutsourcingActionsDep = Annotated[OutsourcingActions, Depends(get_outsourcing_actions)]


@router.get("/requests")
async def my_requests(identity: IdentityDep, actions: OutsourcingActionsDep):
    return action_response(await actions.get_my_outsource_requests(identity))


@router.get("/requests/work")
async def my_work(identity: IdentityDep, actions: OutsourcingActionsDep):
    return action_response(await actions.get_my_outsource_work(identity))


@router.get("/requests/{request_id}")
async def get_request(request_id: str, identity: IdentityDep, actions: OutsourcingActionsDep):
    return action_response(await actions.get_outsource_request_by_id(identity, request_id))


@router.post("/requests")
async def create_request(
    body: CreateOutsourceRequest,
    identity: IdentityDep,
    actions: OutsourcingActionsDep,
):
    result = await actions.create_outsource_request(identity, body)
    return action_response(result, status_code=status.HTTP_201_CREATED)


@router.post("/requests/{request_id}/invite")
async def invite(
    request_id: str,
    body: InviteRequest,
    identity: IdentityDep,
    actions: OutsourcingActionsDep,
):
    result = await actions.invite_to_outsource(identity, request_id, body.invitee_ids, body.message)
    return action_response(result)


@router.post("/requests/{request_id}/cancel")
async def cancel_request(request_id: str, identity: IdentityDep, actions: OutsourcingActionsDep):
    return action_response(await actions.cancel_outsource_request(identity, request_id))


@router.post("/requests/{request_id}/deliver")
async def deliver(request_id: str, identity: IdentityDep, actions: OutsourcingActionsDep):
    return action_response(await actions.mark_outsource_delivered(identity, request_id))


@router.post("/requests/{request_id}/complete")
async def complete(request_id: str, identity: IdentityDep, actions: OutsourcingActionsDep):
    return action_response(await actions.complete_outsource(identity, request_id))


@router.get("/invitations")
async def my_invitations(identity: IdentityDep, actions: OutsourcingActionsDep):
    return action_response(await actions.get_my_invitations(identity))


@router.post("/invitations/{invitation_id}/accept")
async def accept_invitation(invitation_id: str, identity: IdentityDep, actions: OutsourcingActionsDep):
    return action_response(await actions.accept_invitation(identity, invitation_id))


@router.post("/invitations/{invitation_id}/reject")
async def reject_invitation(invitation_id: str, identity: IdentityDep, actions: OutsourcingActionsDep):
    return action_response(await actions.reject_invitation(identity, invitation_id))
