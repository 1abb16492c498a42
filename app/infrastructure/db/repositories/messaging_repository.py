"""
Messaging Repository

Conversations and messages.
"""

from typing import List, Optional

from sqlalchemy import and_, or_, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.db.models.base import utcnow
from app.infrastructure.db.models.messaging import Conversation, Message
from app.infrastructure.db.repositories.base_repository import BaseRepository


class ConversationRepository(BaseRepository[Conversation]):
    def __init__(self, session: AsyncSession):
        super().__init__(Conversation, session)

    async def find_between(self, user_a: str, user_b: str) -> Optional[Conversation]:
        """Existing conversation in either participant order."""
        return await self.find_one(
            or_(
                and_(Conversation.participant1_id == user_a, Conversation.participant2_id == user_b),
                and_(Conversation.participant1_id == user_b, Conversation.participant2_id == user_a),
            )
        )

    async def list_for_user(self, user_id: str) -> List[Conversation]:
        return await self.find_many(
            or_(Conversation.participant1_id == user_id, Conversation.participant2_id == user_id),
            order_by=[Conversation.last_message_at.desc().nulls_last()],
        )

    async def touch(self, conversation_id: str) -> None:
        now = utcnow()
        await self._session.execute(
            update(Conversation)
            .where(Conversation.id == conversation_id)
            .values(last_message_at=now, updated_at=now)
        )


class MessageRepository(BaseRepository[Message]):
    def __init__(self, session: AsyncSession):
        super().__init__(Message, session)

    async def list_by_conversation(self, conversation_id: str, limit: int = 200) -> List[Message]:
        return await self.find_many(
            Message.conversation_id == conversation_id,
            order_by=[Message.created_at],
            limit=limit,
        )

    async def get_last(self, conversation_id: str) -> Optional[Message]:
        messages = await self.find_many(
            Message.conversation_id == conversation_id,
            order_by=[Message.created_at.desc()],
            limit=1,
        )
        return messages[0] if messages else None

    async def count_unread(self, conversation_id: str, reader_id: str) -> int:
        return await self.count_where(
            Message.conversation_id == conversation_id,
            Message.sender_id != reader_id,
            Message.is_read.is_(False),
        )

    async def mark_read(self, conversation_id: str, reader_id: str) -> None:
        """Mark messages sent by the other participant as read."""
        await self._session.execute(
            update(Message)
            .where(
                Message.conversation_id == conversation_id,
                Message.sender_id != reader_id,
                Message.is_read.is_(False),
            )
            .values(is_read=True, read_at=utcnow())
        )
