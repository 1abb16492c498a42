"""
Notification Service

Notification emitter: writes an in-app notification row and, when asked,
sends the matching email. Failures are logged and never raised, so a
notification problem cannot undo the business operation that caused it.
"""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.notifications import NotificationCreate
from app.infrastructure.db.models.notification import Notification
from app.infrastructure.db.repositories.notification_repository import NotificationRepository
from app.infrastructure.db.repositories.user_repository import UserRepository
from app.infrastructure.email.email_service import (
    NOTIFICATION_TEMPLATES,
    EmailService,
    get_email_service,
)


logger = logging.getLogger(__name__)


class NotificationService:
    """
    Creates notifications for users.

    Args:
        session: Async database session shared with the caller's unit of work
        email_service: Optional email client (defaults to the shared one)
    """

    def __init__(self, session: AsyncSession, email_service: Optional[EmailService] = None):
        self.session = session
        self.notifications = NotificationRepository(session)
        self.users = UserRepository(session)
        self.email = email_service or get_email_service()

    async def notify(self, data: NotificationCreate) -> Optional[Notification]:
        """
        Insert a notification and optionally email the user.

        The row is written inside a savepoint so a failed insert leaves the
        surrounding transaction usable.

        Returns:
            The created notification, or None if it could not be written
        """
        try:
            async with self.session.begin_nested():
                notification = await self.notifications.create(
                    Notification(
                        user_id=data.user_id,
                        type=data.type.value,
                        title=data.title,
                        message=data.message,
                        entity_type=data.entity_type,
                        entity_id=data.entity_id,
                    )
                )
        except SQLAlchemyError as e:
            logger.error(f"Failed to create notification for user {data.user_id}: {e}")
            return None

        if data.send_email:
            await self._send_email(notification, data)

        return notification

    async def _send_email(self, notification: Notification, data: NotificationCreate) -> None:
        template = NOTIFICATION_TEMPLATES.get(data.type.value)
        if template is None:
            return

        try:
            user = await self.users.get_by_id(data.user_id)
            if user is None:
                return

            result = await self.email.send(
                to_email=user.email,
                template=template,
                data={"name": user.name or "there", "message": data.message, **data.email_data},
                to_name=user.name,
            )
            if result.success:
                await self.notifications.mark_email_sent(notification.id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to record email for notification {notification.id}: {e}")
