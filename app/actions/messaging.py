"""
Messaging Actions

Two-party conversations between users, optionally tied to an order.
"""

import logging
from typing import Optional

from app.actions.base import BaseActions
from app.domain.models import ActionResult, Identity
from app.domain.notifications import NotificationCreate, NotificationType
from app.infrastructure.db.models.messaging import Conversation, Message
from app.infrastructure.db.repositories.messaging_repository import (
    ConversationRepository,
    MessageRepository,
)
from app.infrastructure.db.repositories.user_repository import UserRepository


logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 100


def preview(content: str) -> str:
    if len(content) <= PREVIEW_LENGTH:
        return content
    return content[:PREVIEW_LENGTH] + "..."


class MessagingActions(BaseActions):
    """Conversations and messages."""

    def __init__(self, session, notifier=None):
        super().__init__(session, notifier)
        self.conversations = ConversationRepository(session)
        self.messages = MessageRepository(session)
        self.users = UserRepository(session)

    @staticmethod
    def _other(conversation: Conversation, user_id: str) -> str:
        if conversation.participant1_id == user_id:
            return conversation.participant2_id
        return conversation.participant1_id

    @staticmethod
    def _is_participant(conversation: Conversation, user_id: str) -> bool:
        return user_id in (conversation.participant1_id, conversation.participant2_id)

    async def get_or_create_conversation(
        self,
        identity: Optional[Identity],
        other_user_id: str,
        order_id: Optional[str] = None,
    ) -> ActionResult:
        denied = self.require_identity(identity)
        if denied:
            return denied
        if other_user_id == identity.user_id:
            return ActionResult.fail("You cannot message yourself")
        if await self.users.get_by_id(other_user_id) is None:
            return ActionResult.fail("User not found")

        conversation = await self.conversations.find_between(identity.user_id, other_user_id)
        if conversation is None:
            conversation = await self.conversations.create(
                Conversation(
                    participant1_id=identity.user_id,
                    participant2_id=other_user_id,
                    order_id=order_id,
                )
            )
        return ActionResult.ok(conversation_id=conversation.id)

    async def send_message(
        self,
        identity: Optional[Identity],
        conversation_id: str,
        content: str,
    ) -> ActionResult:
        denied = self.require_identity(identity)
        if denied:
            return denied

        content = (content or "").strip()
        if not content:
            return ActionResult.fail("Message cannot be empty")

        conversation = await self.conversations.get_by_id(conversation_id)
        if conversation is None or not self._is_participant(conversation, identity.user_id):
            return ActionResult.fail("Conversation not found")

        message = await self.messages.create(
            Message(
                conversation_id=conversation.id,
                sender_id=identity.user_id,
                content=content,
            )
        )
        await self.conversations.touch(conversation.id)

        await self.notifier.notify(
            NotificationCreate(
                user_id=self._other(conversation, identity.user_id),
                type=NotificationType.NEW_MESSAGE,
                title=f"New message from {identity.name or 'a user'}",
                message=preview(content),
                entity_type="conversation",
                entity_id=conversation.id,
            )
        )
        return ActionResult.ok(message_id=message.id)

    async def get_user_conversations(self, identity: Optional[Identity]) -> ActionResult:
        denied = self.require_identity(identity)
        if denied:
            return denied

        summaries = []
        for conversation in await self.conversations.list_for_user(identity.user_id):
            other = await self.users.get_by_id(self._other(conversation, identity.user_id))
            last = await self.messages.get_last(conversation.id)
            summaries.append(
                {
                    "id": conversation.id,
                    "order_id": conversation.order_id,
                    "other_user": {
                        "id": other.id,
                        "name": other.name,
                        "avatar_url": other.avatar_url,
                    } if other else None,
                    "last_message": preview(last.content) if last else None,
                    "last_message_at": conversation.last_message_at,
                    "unread_count": await self.messages.count_unread(conversation.id, identity.user_id),
                }
            )
        return ActionResult.ok(conversations=summaries)

    async def get_conversation_by_id(
        self,
        identity: Optional[Identity],
        conversation_id: str,
    ) -> ActionResult:
        """Conversation header with the other participant. Messages stay unread."""
        denied = self.require_identity(identity)
        if denied:
            return denied

        conversation = await self.conversations.get_by_id(conversation_id)
        if conversation is None or not self._is_participant(conversation, identity.user_id):
            return ActionResult.fail("Conversation not found")

        other = await self.users.get_by_id(self._other(conversation, identity.user_id))
        return ActionResult.ok(
            conversation={
                **conversation.model_dump(),
                "other_user": {
                    "id": other.id,
                    "name": other.name,
                    "avatar_url": other.avatar_url,
                } if other else None,
            }
        )

    async def get_conversation_messages(
        self,
        identity: Optional[Identity],
        conversation_id: str,
    ) -> ActionResult:
        """Messages oldest first. Incoming messages are marked read."""
        denied = self.require_identity(identity)
        if denied:
            return denied

        conversation = await self.conversations.get_by_id(conversation_id)
        if conversation is None or not self._is_participant(conversation, identity.user_id):
            return ActionResult.fail("Conversation not found")

        messages = await self.messages.list_by_conversation(conversation.id)
        await self.messages.mark_read(conversation.id, identity.user_id)
        return ActionResult.ok(
            conversation_id=conversation.id,
            messages=[m.model_dump() for m in messages],
        )
