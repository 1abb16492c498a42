"""
Shortlist Routes

Pro-only list of favourite freelancers.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from app.actions.shortlist import ShortlistActions
from app.api.dependencies import IdentityDep, NotifierDep, OptionalIdentityDep, action_response
from app.domain.marketplace import ShortlistAddRequest, ShortlistUpdateRequest
from app.infrastructure.db.dependencies import SessionDep


router = APIRouter(prefix="/shortlist")


def get_shortlist_actions(session: SessionDep, notifier: NotifierDep) -> ShortlistActions:
    return ShortlistActions(session, notifier)


ShortlistActionsDep = Annotated[ShortlistActions, Depends(get_shortlist_actions)]


@router.get("")
async def get_shortlist(identity: IdentityDep, actions: ShortlistActionsDep):
    return action_response(await actions.get_shortlist(identity))


@router.post("")
async def add_to_shortlist(body: ShortlistAddRequest, identity: IdentityDep, actions: ShortlistActionsDep):
    return action_response(await actions.add_to_shortlist(identity, body))


@router.get("/categories/{category_id}")
async def get_shortlist_by_category(category_id: str, identity: IdentityDep, actions: ShortlistActionsDep):
    return action_response(await actions.get_shortlist_by_category(identity, category_id))


@router.get("/{user_id}")
async def is_in_shortlist(user_id: str, identity: OptionalIdentityDep, actions: ShortlistActionsDep):
    return action_response(await actions.is_in_shortlist(identity, user_id))


@router.patch("/{user_id}")
async def update_shortlist_entry(
    user_id: str,
    body: ShortlistUpdateRequest,
    identity: IdentityDep,
    actions: ShortlistActionsDep,
):
    return action_response(await actions.update_shortlist_entry(identity, user_id, body))


@router.delete("/{user_id}")
async def remove_from_shortlist(user_id: str, identity: IdentityDep, actions: ShortlistActionsDep):
    return action_response(await actions.remove_from_shortlist(identity, user_id))
