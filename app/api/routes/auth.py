"""
Auth Routes

Account registration, login and logout. The session token only ever travels
in the httponly session cookie.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends

from app.actions.auth import AuthActions
from app.api.dependencies import (
    IdentityDep,
    NotifierDep,
    SessionStoreDep,
    action_response,
    clear_session_cookie,
    get_session_token,
    set_session_cookie,
)
from app.domain.models import (
    LoginRequest,
    PasswordResetRequest,
    RegisterRequest,
    VerifyEmailRequest,
)
from app.infrastructure.db.dependencies import SessionDep


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth")


def session_response(result):
    """Render a login/registration result, moving the token into the cookie."""
    if not result.success:
        return action_response(result)

    token = result.data.pop("token")
    response = action_response(result)
    set_session_cookie(response, token)
    return response


@router.post("/register")
async def register(
    body: RegisterRequest,
    session: SessionDep,
    notifier: NotifierDep,
    store: SessionStoreDep,
):
    actions = AuthActions(session, notifier, session_store=store)
    result = await actions.register(body.name, body.email, body.password, body.confirm_password)
    return session_response(result)


@router.post("/login")
async def login(
    body: LoginRequest,
    session: SessionDep,
    notifier: NotifierDep,
    store: SessionStoreDep,
):
    actions = AuthActions(session, notifier, session_store=store)
    return session_response(await actions.login(body.email, body.password))


@router.post("/logout")
async def logout(
    session: SessionDep,
    notifier: NotifierDep,
    store: SessionStoreDep,
    token: Optional[str] = Depends(get_session_token),
):
    actions = AuthActions(session, notifier, session_store=store)
    response = action_response(await actions.logout(token))
    clear_session_cookie(response)
    return response


@router.get("/me")
async def me(
    identity: IdentityDep,
    session: SessionDep,
    notifier: NotifierDep,
    store: SessionStoreDep,
):
    actions = AuthActions(session, notifier, session_store=store)
    return action_response(await actions.get_current_user(identity))


@router.post("/verify-email")
async def verify_email(
    body: VerifyEmailRequest,
    session: SessionDep,
    notifier: NotifierDep,
    store: SessionStoreDep,
    token: Optional[str] = Depends(get_session_token),
):
    actions = AuthActions(session, notifier, session_store=store)
    result = await actions.verify_email(body.token)

    # Keep the caller's live session in step with the account
    if result.success and token:
        identity = await store.get_session(token)
        if identity is not None and identity.user_id == result.data.get("user_id"):
            await store.update_session(token, is_email_verified=True)

    return action_response(result)


@router.post("/password-reset")
async def password_reset(
    body: PasswordResetRequest,
    session: SessionDep,
    notifier: NotifierDep,
    store: SessionStoreDep,
):
    actions = AuthActions(session, notifier, session_store=store)
    return action_response(await actions.request_password_reset(body.email))
