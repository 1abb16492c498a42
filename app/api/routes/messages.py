"""
Messaging Routes
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from app.actions.messaging import MessagingActions
from app.api.dependencies import IdentityDep, NotifierDep, action_response
from app.domain.marketplace import SendMessageRequest, StartConversationRequest
from app.infrastructure.db.dependencies import SessionDep


router = APIRouter(prefix="/messages")


def get_messaging_actions(session: SessionDep, notifier: NotifierDep) -> MessagingActions:
    return MessagingActions(session, notifier)


MessagingActionsDep = Annotated[MessagingActions, Depends(get_messaging_actions)]


@router.get("/conversations")
async def list_conversations(identity: IdentityDep, actions: MessagingActionsDep):
    return action_response(await actions.get_user_conversations(identity))


@router.post("/conversations")
async def start_conversation(
    body: StartConversationRequest,
    identity: IdentityDep,
    actions: MessagingActionsDep,
):
    result = await actions.get_or_create_conversation(identity, body.other_user_id, body.order_id)
    return action_response(result)


@router.get("/conversations/{conversation_id}/details")
async def conversation_details(
    conversation_id: str,
    identity: IdentityDep,
    actions: MessagingActionsDep,
):
    return action_response(await actions.get_conversation_by_id(identity, conversation_id))


@router.get("/conversations/{conversation_id}")
async def conversation_messages(
    conversation_id: str,
    identity: IdentityDep,
    actions: MessagingActionsDep,
):
    """Messages oldest first; marks incoming messages read."""
    return action_response(await actions.get_conversation_messages(identity, conversation_id))


@router.post("")
async def send_message(body: SendMessageRequest, identity: IdentityDep, actions: MessagingActionsDep):
    result = await actions.send_message(identity, body.conversation_id, body.content)
    return action_response(result)
