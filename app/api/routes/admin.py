"""
Admin Routes

Staff dashboard: users, ID verifications, disputes, categories and the
audit log. Every route requires a staff session; writes are further
restricted to admins by the actions.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.actions.admin import AdminActions
from app.api.dependencies import (
    IdentityDep,
    NotifierDep,
    SessionStoreDep,
    action_response,
    get_current_identity,
)
from app.domain.marketplace import (
    CategoryCreateRequest,
    CategoryUpdateRequest,
    RejectVerificationRequest,
    ResolveDisputeRequest,
    SuspendUserRequest,
)
from app.domain.models import Identity
from app.infrastructure.db.dependencies import SessionDep


logger = logging.getLogger(__name__)


async def require_staff(identity: Identity = Depends(get_current_identity)) -> Identity:
    if not identity.is_staff:
        logger.warning(f"Non-staff user {identity.user_id} attempted admin access")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return identity


router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(require_staff)],
)


def get_admin_actions(
    session: SessionDep,
    notifier: NotifierDep,
    store: SessionStoreDep,
) -> AdminActions:
    return AdminActions(session, notifier, session_store=store)


AdminActionsDep = Annotated[AdminActions, Depends(get_admin_actions)]


@router.get("/stats")
async def platform_stats(identity: IdentityDep, actions: AdminActionsDep):
    return action_response(await actions.get_platform_stats(identity))


# =============================================================================
# Users
# =============================================================================

@router.get("/users")
async def list_users(
    identity: IdentityDep,
    actions: AdminActionsDep,
    q: Optional[str] = Query(None, description="Email or name substring"),
    page: int = Query(1, ge=1),
):
    return action_response(await actions.get_users(identity, query=q, page=page))


@router.post("/users/{user_id}/suspend")
async def suspend_user(
    user_id: str,
    body: SuspendUserRequest,
    identity: IdentityDep,
    actions: AdminActionsDep,
):
    return action_response(await actions.suspend_user(identity, user_id, body.reason))


@router.post("/users/{user_id}/unsuspend")
async def unsuspend_user(user_id: str, identity: IdentityDep, actions: AdminActionsDep):
    return action_response(await actions.unsuspend_user(identity, user_id))


# =============================================================================
# Verifications
# =============================================================================

@router.get("/verifications")
async def pending_verifications(identity: IdentityDep, actions: AdminActionsDep):
    return action_response(await actions.get_pending_verifications(identity))


@router.post("/verifications/{verification_id}/approve")
async def approve_verification(verification_id: str, identity: IdentityDep, actions: AdminActionsDep):
    return action_response(await actions.approve_verification(identity, verification_id))


@router.post("/verifications/{verification_id}/reject")
async def reject_verification(
    verification_id: str,
    body: RejectVerificationRequest,
    identity: IdentityDep,
    actions: AdminActionsDep,
):
    return action_response(await actions.reject_verification(identity, verification_id, body.reason))


# =============================================================================
# Disputes
# =============================================================================

@router.get("/disputes")
async def list_disputes(
    identity: IdentityDep,
    actions: AdminActionsDep,
    dispute_status: Optional[str] = Query(None, alias="status"),
):
    return action_response(await actions.get_disputes(identity, dispute_status))


@router.post("/disputes/{dispute_id}/resolve")
async def resolve_dispute(
    dispute_id: str,
    body: ResolveDisputeRequest,
    identity: IdentityDep,
    actions: AdminActionsDep,
):
    return action_response(await actions.resolve_dispute(identity, dispute_id, body))


# =============================================================================
# Categories & audit
# =============================================================================

@router.post("/categories")
async def create_category(body: CategoryCreateRequest, identity: IdentityDep, actions: AdminActionsDep):
    result = await actions.create_category(identity, body)
    return action_response(result, status_code=status.HTTP_201_CREATED)


@router.patch("/categories/{category_id}")
async def update_category(
    category_id: str,
    body: CategoryUpdateRequest,
    identity: IdentityDep,
    actions: AdminActionsDep,
):
    return action_response(await actions.update_category(identity, category_id, body))


@router.get("/audit-logs")
async def audit_logs(
    identity: IdentityDep,
    actions: AdminActionsDep,
    limit: int = Query(100, ge=1, le=500),
):
    return action_response(await actions.get_audit_logs(identity, limit=limit))
