"""
API Dependencies

FastAPI dependency injection for the caller's identity, the session store,
payment gateways and the reconciliation service.

Sessions are opaque tokens in an httponly cookie; the identity lives in
Redis. Routers should import their dependencies from here.
"""

import logging
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from app.config.settings import get_settings
from app.domain.models import ActionResult, Identity
from app.infrastructure.auth.session_store import SessionStore, get_session_store
from app.infrastructure.db.dependencies import SessionDep
from app.infrastructure.exceptions import SessionStoreError
from app.infrastructure.payments import OzowGateway, PayFastGateway
from app.infrastructure.services.notification_service import NotificationService
from app.infrastructure.services.reconciliation_service import PaymentReconciliationService

logger = logging.getLogger(__name__)

# =============================================================================
# Sessions
# =============================================================================

def get_session_store_dependency() -> SessionStore:
    """Session store provider (overridden in tests)."""
    return get_session_store()

SessionStoreDep = Annotated[SessionStore, Depends(get_session_store_dependency)]

def get_session_token(request: Request) -> Optional[str]:
    """Opaque session token from the session cookie, if any."""
    return request.cookies.get(get_settings().session_cookie_name)

async def get_optional_identity(
    store: SessionStoreDep,
    token: Optional[str] = Depends(get_session_token),
) -> Optional[Identity]:
    """
    Identity for the session cookie.

    Returns ``None`` if there is no cookie, the session is gone, or the store
    is unreachable (for public endpoints).
    """
    if not token:
        return None
    try:
        return await store.get_session(token)
    except SessionStoreError as e:
        logger.error(f"[SESSION] Session lookup failed: {e}")
        return None

async def get_current_identity(
    identity: Optional[Identity] = Depends(get_optional_identity),
) -> Identity:
    """
    Identity of the logged-in caller.

    Raises:
        HTTPException 401: no valid session
    """
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
    return identity

OptionalIdentityDep = Annotated[Optional[Identity], Depends(get_optional_identity)]
IdentityDep = Annotated[Identity, Depends(get_current_identity)]

def set_session_cookie(response: Response, token: str) -> None:
    settings = get_settings()
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.session_ttl_seconds,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )

def clear_session_cookie(response: Response) -> None:
    settings = get_settings()
    response.delete_cookie(
        key=settings.session_cookie_name,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )

# =============================================================================
# Services
# =============================================================================

def get_notifier(session: SessionDep) -> NotificationService:
    return NotificationService(session)

NotifierDep = Annotated[NotificationService, Depends(get_notifier)]

def get_reconciler(session: SessionDep, notifier: NotifierDep) -> PaymentReconciliationService:
    """Reconciliation service bound to the request's unit of work."""
    return PaymentReconciliationService(session, notifier)

def get_ozow_gateway() -> OzowGateway:
    return OzowGateway()

def get_payfast_gateway() -> PayFastGateway:
    return PayFastGateway()

ReconcilerDep = Annotated[PaymentReconciliationService, Depends(get_reconciler)]
OzowGatewayDep = Annotated[OzowGateway, Depends(get_ozow_gateway)]
PayFastGatewayDep = Annotated[PayFastGateway, Depends(get_payfast_gateway)]

# =============================================================================
# Responses
# =============================================================================

def action_response(result: ActionResult, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    """
    Render an action result.

    Success returns ``{"success": true, **data}``; failure answers 400 with
    ``{"success": false, "error": ...}``.
    """
    if result.success:
        return JSONResponse(
            status_code=status_code,
            content=jsonable_encoder({"success": True, **result.data}),
        )

    content = {"success": False, "error": result.error}
    if result.errors:
        content["errors"] = result.errors
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=content)

# Re-export DB dependencies for a single import source
from app.infrastructure.db.dependencies import (  # noqa: E402, F401
    NotificationRepoDep,
    TransactionRepoDep,
)
