"""
Dependency Injection Providers for Zomieks

FastAPI dependencies for database sessions and repositories.
"""

from typing import Annotated, AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.db.database import get_session
from app.infrastructure.db.repositories import (
    NotificationRepository,
    TransactionRepository,
)


# Type alias for session dependency
SessionDep = Annotated[AsyncSession, Depends(get_session)]


async def get_notification_repository(
    session: SessionDep,
) -> AsyncGenerator[NotificationRepository, None]:
    """
    Dependency provider for NotificationRepository.

    Usage:
        @router.get("/notifications")
        async def list_notifications(repo: NotificationRepoDep):
            ...
    """
    yield NotificationRepository(session)


async def get_transaction_repository(
    session: SessionDep,
) -> AsyncGenerator[TransactionRepository, None]:
    """Dependency provider for TransactionRepository."""
    yield TransactionRepository(session)


# Type aliases for repository dependencies
NotificationRepoDep = Annotated[
    NotificationRepository,
    Depends(get_notification_repository)
]
TransactionRepoDep = Annotated[
    TransactionRepository,
    Depends(get_transaction_repository)
]
