"""
Account Actions

Registration, login, logout, email verification and password reset.
Successful registration and login issue a session; the route layer turns
the returned token into the session cookie.
"""

import logging
import re
import secrets
from datetime import timedelta
from typing import Optional

from sqlalchemy.exc import IntegrityError

from app.actions.base import BaseActions
from app.config.settings import get_settings
from app.domain.models import NOT_LOGGED_IN, ActionResult, Identity, UserRole
from app.infrastructure.auth.passwords import (
    hash_password,
    validate_password_strength,
    verify_password,
)
from app.infrastructure.auth.session_store import SessionStore, get_session_store
from app.infrastructure.db.models.base import utcnow
from app.infrastructure.db.models.user import User, UserProfile
from app.infrastructure.db.repositories.user_repository import (
    EmailTokenRepository,
    ProfileRepository,
    UserRepository,
)
from app.infrastructure.email.email_service import get_email_service


logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
EMAIL_TOKEN_TTL = timedelta(hours=24)
RESET_TOKEN_TTL = timedelta(hours=1)


def generate_token() -> str:
    """Single-use email token, 32 random bytes hex encoded."""
    return secrets.token_hex(32)


class AuthActions(BaseActions):
    """Account lifecycle."""

    def __init__(self, session, notifier=None, session_store: Optional[SessionStore] = None):
        super().__init__(session, notifier)
        self.users = UserRepository(session)
        self.profiles = ProfileRepository(session)
        self.tokens = EmailTokenRepository(session)
        self.sessions = session_store or get_session_store()
        self.email = get_email_service()

    async def _issue_session(self, user: User) -> ActionResult:
        token, identity = await self.sessions.create_session(
            user_id=user.id,
            email=user.email,
            name=user.name,
            role=user.role,
            is_email_verified=user.is_email_verified,
            is_id_verified=user.is_id_verified,
        )
        return ActionResult.ok(user_id=user.id, token=token, expires_at=identity.expires_at)

    async def register(
        self,
        name: str,
        email: str,
        password: str,
        confirm_password: str,
    ) -> ActionResult:
        """
        Create an account with a profile, a free subscription and an email
        verification token, then log the user in.
        """
        if not email or not password or not confirm_password or not name:
            return ActionResult.fail("All fields are required")
        if password != confirm_password:
            return ActionResult.fail("Passwords do not match")
        if not EMAIL_PATTERN.match(email):
            return ActionResult.fail("Invalid email format")

        errors = validate_password_strength(password)
        if errors:
            return ActionResult.fail(errors[0], errors=errors)

        email = email.strip().lower()
        if await self.users.get_by_email(email):
            return ActionResult.fail("An account with this email already exists")

        now = utcnow()
        try:
            async with self.session.begin_nested():
                user = await self.users.create(
                    User(
                        email=email,
                        password_hash=hash_password(password),
                        name=name.strip(),
                        role=UserRole.USER.value,
                    )
                )
        except IntegrityError:
            return ActionResult.fail("An account with this email already exists")

        await self.profiles.create(UserProfile(user_id=user.id))
        await self.subscriptions.create_free(user.id, now)

        verification_token = generate_token()
        await self.tokens.create_verification_token(
            user.id, verification_token, now + EMAIL_TOKEN_TTL
        )
        await self.email.send(
            to_email=email,
            template="email_verification",
            data={
                "name": user.name,
                "link": f"{get_settings().app_url}/verify-email?token={verification_token}",
            },
            to_name=user.name,
        )

        logger.info(f"Registered user {user.id}")
        return await self._issue_session(user)

    async def login(self, email: str, password: str) -> ActionResult:
        if not email or not password:
            return ActionResult.fail("Email and password are required")

        user = await self.users.get_by_email(email)
        if user is None:
            return ActionResult.fail("Invalid email or password")

        if user.is_suspended:
            return ActionResult.fail(
                f"Your account has been suspended. {user.suspended_reason or ''}".strip()
            )

        if not verify_password(password, user.password_hash):
            return ActionResult.fail("Invalid email or password")

        user.last_login_at = utcnow()
        await self.users.save(user)
        return await self._issue_session(user)

    async def logout(self, token: Optional[str]) -> ActionResult:
        if token:
            await self.sessions.delete_session(token)
        return ActionResult.ok()

    async def verify_email(self, token: str) -> ActionResult:
        record = await self.tokens.get_verification_token(token)
        if record is None:
            return ActionResult.fail("Invalid or expired verification link")
        if record.expires_at < utcnow():
            return ActionResult.fail("Verification link has expired")

        user = await self.users.get_by_id(record.user_id)
        if user is None:
            return ActionResult.fail("Invalid or expired verification link")

        user.is_email_verified = True
        await self.users.save(user)
        await self.tokens.delete_verification_token(record.id)

        await self.email.send(
            to_email=user.email,
            template="welcome",
            data={"name": user.name or "there"},
            to_name=user.name,
        )
        return ActionResult.ok(user_id=user.id)

    async def request_password_reset(self, email: str) -> ActionResult:
        """Always succeeds so the response does not reveal whether the account exists."""
        if not email:
            return ActionResult.fail("Email is required")

        user = await self.users.get_by_email(email)
        if user is None:
            return ActionResult.ok()

        token = generate_token()
        await self.tokens.create_reset_token(user.id, token, utcnow() + RESET_TOKEN_TTL)
        await self.email.send(
            to_email=user.email,
            template="password_reset",
            data={
                "name": user.name or "there",
                "link": f"{get_settings().app_url}/reset-password?token={token}",
            },
            to_name=user.name,
        )
        return ActionResult.ok()

    async def get_current_user(self, identity: Optional[Identity]) -> ActionResult:
        if identity is None:
            return ActionResult.fail(NOT_LOGGED_IN)

        user = await self.users.get_by_id(identity.user_id)
        if user is None:
            return ActionResult.fail("User not found")

        profile = await self.profiles.get_by_user_id(user.id)
        subscription = await self.load_subscription(user.id)
        return ActionResult.ok(
            user={
                "id": user.id,
                "email": user.email,
                "name": user.name,
                "avatar_url": user.avatar_url,
                "role": user.role,
                "is_email_verified": user.is_email_verified,
                "is_id_verified": user.is_id_verified,
            },
            profile=profile.model_dump(exclude={"created_at", "updated_at"}) if profile else None,
            plan=subscription.plan if subscription else "free",
        )
