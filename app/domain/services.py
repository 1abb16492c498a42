"""
Profile Service

Reads and edits a user's public profile and handles ID verification
submissions. Uses the repository layer over the request's session; the
request dependency owns the commit.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.marketplace import VerificationStatus
from app.domain.models import ProfileUpdate, VerificationSubmission
from app.infrastructure.db.models.user import UserProfile, UserVerification
from app.infrastructure.db.repositories import (
    ProfileRepository,
    UserRepository,
    VerificationRepository,
)
from app.infrastructure.exceptions import (
    DuplicateError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)


class ProfileService:
    """
    Service for user profiles and identity verification.

    Handles:
    - Profile retrieval (account fields merged with the public profile)
    - Partial profile updates, creating the profile row on first edit
    - ID verification submission and status lookup
    """

    def __init__(self, session: AsyncSession):
        self.users = UserRepository(session)
        self.profiles = ProfileRepository(session)
        self.verifications = VerificationRepository(session)

    async def get_profile(self, user_id: str) -> Dict[str, Any]:
        """
        Retrieve a user's profile.

        Args:
            user_id: The user's id

        Returns:
            Account fields plus the public profile fields (None when unset)

        Raises:
            NotFoundError: If the user does not exist
        """
        user = await self.users.get_by_id(user_id)
        if user is None:
            raise NotFoundError(
                f"No user found with id {user_id}",
                operation="select",
                table="users"
            )

        profile = await self.profiles.get_by_user_id(user_id)
        return self._render(user, profile)

    async def update_profile(self, user_id: str, data: ProfileUpdate) -> Dict[str, Any]:
        """
        Update a user's profile (partial update).

        Args:
            user_id: The user's id
            data: Fields to update (only provided values are written)

        Returns:
            The updated profile, as returned by ``get_profile``

        Raises:
            NotFoundError: If the user does not exist
        """
        user = await self.users.get_by_id(user_id)
        if user is None:
            raise NotFoundError(
                f"No user found with id {user_id}",
                operation="update",
                table="users"
            )

        update_data = data.model_dump(exclude_unset=True)

        # Display name lives on the account
        name = update_data.pop("name", None)
        if name:
            user.name = name
            await self.users.save(user)

        profile = await self.profiles.get_by_user_id(user_id)
        if profile is None:
            profile = await self.profiles.create(UserProfile(user_id=user_id, **update_data))
        elif update_data:
            for field, value in update_data.items():
                setattr(profile, field, value)
            await self.profiles.save(profile)

        logger.info(f"[PROFILE] Updated profile for {user_id}: {sorted(update_data)}")
        return self._render(user, profile)

    async def submit_verification(
        self,
        user_id: str,
        data: VerificationSubmission
    ) -> UserVerification:
        """
        Submit ID documents for review.

        A rejected submission is reopened with the new documents rather than
        duplicated.

        Raises:
            NotFoundError: If the user does not exist
            ValidationError: If the user is already verified
            DuplicateError: If a submission is already awaiting review
        """
        user = await self.users.get_by_id(user_id)
        if user is None:
            raise NotFoundError(
                f"No user found with id {user_id}",
                operation="insert",
                table="user_verifications"
            )

        existing = await self.verifications.get_latest_for_user(user_id)

        if user.is_id_verified or (
            existing is not None and existing.status == VerificationStatus.APPROVED.value
        ):
            raise ValidationError("You are already verified")

        if existing is not None and existing.status == VerificationStatus.PENDING.value:
            raise DuplicateError(
                "You already have a pending verification request",
                operation="insert",
                table="user_verifications"
            )

        if existing is not None:
            existing.document_type = data.document_type
            existing.document_url = data.document_url
            existing.selfie_url = data.selfie_url
            existing.status = VerificationStatus.PENDING.value
            existing.notes = None
            existing.reviewed_by = None
            existing.reviewed_at = None
            verification = await self.verifications.save(existing)
        else:
            verification = await self.verifications.create(
                UserVerification(
                    user_id=user_id,
                    document_type=data.document_type,
                    document_url=data.document_url,
                    selfie_url=data.selfie_url,
                    status=VerificationStatus.PENDING.value,
                )
            )

        logger.info(f"[VERIFICATION] Submission {verification.id} queued for {user_id}")
        return verification

    async def get_verification_status(self, user_id: str) -> Optional[UserVerification]:
        """Latest verification submission for the user, or None if never submitted."""
        return await self.verifications.get_latest_for_user(user_id)

    @staticmethod
    def _render(user, profile: Optional[UserProfile]) -> Dict[str, Any]:
        return {
            "id": user.id,
            "email": user.email,
            "name": user.name,
            "avatar_url": user.avatar_url,
            "is_id_verified": user.is_id_verified,
            "headline": profile.headline if profile else None,
            "bio": profile.bio if profile else None,
            "location": profile.location if profile else None,
            "skills": (profile.skills or []) if profile else [],
            "hourly_rate": profile.hourly_rate if profile else None,
        }
