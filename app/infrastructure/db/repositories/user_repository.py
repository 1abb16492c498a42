"""
User Repository

Accounts, profiles, ID verifications and email tokens.
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import delete, or_
from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.db.models.user import (
    User,
    UserProfile,
    UserVerification,
    EmailVerificationToken,
    PasswordResetToken,
)
from app.infrastructure.db.repositories.base_repository import BaseRepository


logger = logging.getLogger(__name__)


class UserRepository(BaseRepository[User]):
    """Repository for user accounts."""

    def __init__(self, session: AsyncSession):
        super().__init__(User, session)

    async def get_by_email(self, email: str) -> Optional[User]:
        """Lookup by email (stored lowercased)."""
        return await self.find_one(User.email == email.strip().lower())

    async def search(
        self,
        query: Optional[str] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> List[User]:
        """Newest users, optionally filtered by email or name substring."""
        conditions = []
        if query:
            pattern = f"%{query.strip().lower()}%"
            conditions.append(or_(User.email.ilike(pattern), User.name.ilike(pattern)))
        return await self.find_many(
            *conditions,
            order_by=[User.created_at.desc()],
            skip=skip,
            limit=limit,
        )

    async def count_matching(self, query: Optional[str] = None) -> int:
        if not query:
            return await self.count()
        pattern = f"%{query.strip().lower()}%"
        return await self.count_where(or_(User.email.ilike(pattern), User.name.ilike(pattern)))


class ProfileRepository(BaseRepository[UserProfile]):
    """Repository for public profiles."""

    def __init__(self, session: AsyncSession):
        super().__init__(UserProfile, session)

    async def get_by_user_id(self, user_id: str) -> Optional[UserProfile]:
        return await self.find_one(UserProfile.user_id == user_id)


class VerificationRepository(BaseRepository[UserVerification]):
    """Repository for ID verification submissions."""

    def __init__(self, session: AsyncSession):
        super().__init__(UserVerification, session)

    async def list_pending(self) -> List[UserVerification]:
        return await self.find_many(
            UserVerification.status == "pending",
            order_by=[UserVerification.created_at.desc()],
        )

    async def get_latest_for_user(self, user_id: str) -> Optional[UserVerification]:
        """Most recent submission for a user, or None."""
        rows = await self.find_many(
            UserVerification.user_id == user_id,
            order_by=[UserVerification.created_at.desc()],
            limit=1,
        )
        return rows[0] if rows else None


class EmailTokenRepository:
    """Single-use tokens for email verification and password reset."""

    def __init__(self, session: AsyncSession):
        self._verification = BaseRepository(EmailVerificationToken, session)
        self._reset = BaseRepository(PasswordResetToken, session)
        self._session = session

    async def create_verification_token(
        self, user_id: str, token: str, expires_at: datetime
    ) -> EmailVerificationToken:
        return await self._verification.create(
            EmailVerificationToken(user_id=user_id, token=token, expires_at=expires_at)
        )

    async def get_verification_token(self, token: str) -> Optional[EmailVerificationToken]:
        return await self._verification.find_one(EmailVerificationToken.token == token)

    async def delete_verification_token(self, token_id: str) -> bool:
        return await self._verification.delete(token_id)

    async def create_reset_token(
        self, user_id: str, token: str, expires_at: datetime
    ) -> PasswordResetToken:
        # Only the newest reset link stays valid
        await self._session.execute(
            delete(PasswordResetToken).where(PasswordResetToken.user_id == user_id)
        )
        return await self._reset.create(
            PasswordResetToken(user_id=user_id, token=token, expires_at=expires_at)
        )
