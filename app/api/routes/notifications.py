"""
Notification Routes

Read and acknowledge in-app notifications for the logged-in user.
"""

import logging

from fastapi import APIRouter, Query, status
from fastapi.responses import JSONResponse

from app.api.dependencies import IdentityDep, NotificationRepoDep
from app.domain.notifications import (
    NotificationAction,
    NotificationActionRequest,
    NotificationRead,
)


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications")

MAX_LIMIT = 100


@router.get("")
async def list_notifications(
    identity: IdentityDep,
    repo: NotificationRepoDep,
    count: bool = Query(False, description="Return only the unread count"),
    unread: bool = Query(False, description="Only unread notifications"),
    limit: int = Query(20, ge=1),
):
    """
    ``?count=true`` returns ``{count}``; otherwise ``{notifications}``, newest
    first.
    """
    if count:
        return {"count": await repo.count_unread(identity.user_id)}

    notifications = await repo.list_for_user(
        identity.user_id,
        unread_only=unread,
        limit=min(limit, MAX_LIMIT),
    )
    return {
        "notifications": [
            NotificationRead.model_validate(n, from_attributes=True).model_dump(mode="json")
            for n in notifications
        ]
    }


@router.post("")
async def update_notifications(
    body: NotificationActionRequest,
    identity: IdentityDep,
    repo: NotificationRepoDep,
):
    if body.action == NotificationAction.MARK_READ.value and body.notification_id:
        marked = await repo.mark_read(body.notification_id, identity.user_id)
        return {"success": marked}

    if body.action == NotificationAction.MARK_ALL_READ.value:
        marked_count = await repo.mark_all_read(identity.user_id)
        return {"success": True, "markedCount": marked_count}

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid action"},
    )
