"""
Profile Routes

The caller's own profile and ID verification submissions.

Service errors propagate to the application's exception handlers
(NotFoundError -> 404, DuplicateError -> 409, ValidationError -> 400).
"""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.encoders import jsonable_encoder

from app.api.dependencies import IdentityDep
from app.domain.models import ProfileUpdate, VerificationSubmission
from app.domain.services import ProfileService
from app.infrastructure.db.dependencies import SessionDep


router = APIRouter(prefix="/profile")


def get_profile_service(session: SessionDep) -> ProfileService:
    return ProfileService(session)


ProfileServiceDep = Annotated[ProfileService, Depends(get_profile_service)]


@router.get("/me")
async def get_current_profile(identity: IdentityDep, service: ProfileServiceDep):
    """Get the current user's profile."""
    return {"profile": await service.get_profile(identity.user_id)}


@router.patch("/me")
async def update_profile(body: ProfileUpdate, identity: IdentityDep, service: ProfileServiceDep):
    """Update the current user's profile."""
    return {"profile": await service.update_profile(identity.user_id, body)}


@router.post("/verification", status_code=status.HTTP_201_CREATED)
async def submit_verification(
    body: VerificationSubmission,
    identity: IdentityDep,
    service: ProfileServiceDep,
):
    """Submit ID documents for staff review."""
    verification = await service.submit_verification(identity.user_id, body)
    return {"success": True, "verification": jsonable_encoder(verification.model_dump())}


@router.get("/verification")
async def get_verification_status(identity: IdentityDep, service: ProfileServiceDep):
    verification = await service.get_verification_status(identity.user_id)
    return {
        "verification": jsonable_encoder(verification.model_dump()) if verification else None
    }
