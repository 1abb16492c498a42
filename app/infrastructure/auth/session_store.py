"""
Session Store

Opaque session tokens in Redis.

Keys:
- session:{token}         JSON identity record, TTL = session lifetime
- user_sessions:{user_id} JSON list of the most recent tokens, TTL = 2x lifetime
"""

import json
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from app.config.settings import get_settings
from app.domain.models import Identity
from app.infrastructure.exceptions import SessionStoreError


logger = logging.getLogger(__name__)

SESSION_PREFIX = "session:"
USER_SESSIONS_PREFIX = "user_sessions:"


def generate_session_token() -> str:
    """32 random bytes, hex encoded."""
    return secrets.token_hex(32)


class SessionStore:
    """
    Session issuance, lookup, refresh and revocation.

    Args:
        client: redis.asyncio client (decode_responses=True)
        ttl_seconds: Session lifetime
        index_limit: How many recent tokens are tracked per user
    """

    def __init__(
        self,
        client: aioredis.Redis,
        ttl_seconds: Optional[int] = None,
        index_limit: Optional[int] = None,
    ):
        settings = get_settings()
        self._redis = client
        self._ttl = ttl_seconds or settings.session_ttl_seconds
        self._index_limit = index_limit or settings.session_index_limit

    @property
    def ttl_seconds(self) -> int:
        return self._ttl

    # =========================================================================
    # Sessions
    # =========================================================================

    async def create_session(
        self,
        user_id: str,
        email: str,
        name: Optional[str],
        role: str,
        is_email_verified: bool,
        is_id_verified: bool,
    ) -> tuple[str, Identity]:
        """
        Issue a new session and index it under the user.

        Returns:
            (token, identity)
        """
        now = datetime.now(timezone.utc)
        identity = Identity(
            user_id=user_id,
            email=email,
            name=name,
            role=role,
            is_email_verified=is_email_verified,
            is_id_verified=is_id_verified,
            created_at=now,
            expires_at=now + timedelta(seconds=self._ttl),
        )
        token = generate_session_token()

        try:
            await self._redis.set(
                f"{SESSION_PREFIX}{token}",
                identity.model_dump_json(),
                ex=self._ttl,
            )
            await self._track_user_session(user_id, token)
        except RedisError as e:
            raise SessionStoreError("Failed to create session", original_error=e)

        logger.info(f"[SESSION] Created session for user {user_id}")
        return token, identity

    async def get_session(self, token: Optional[str]) -> Optional[Identity]:
        """
        Resolve a token to its identity.

        Expired records are deleted and reported as missing.
        """
        if not token:
            return None

        try:
            raw = await self._redis.get(f"{SESSION_PREFIX}{token}")
        except RedisError as e:
            raise SessionStoreError("Failed to read session", original_error=e)

        if not raw:
            return None

        try:
            identity = Identity.model_validate_json(raw)
        except ValueError:
            logger.warning("[SESSION] Discarding unreadable session record")
            await self.delete_session(token)
            return None

        if identity.expires_at <= datetime.now(timezone.utc):
            await self.delete_session(token)
            return None

        return identity

    async def refresh_session(self, token: str) -> Optional[Identity]:
        """Extend a live session by a full lifetime."""
        identity = await self.get_session(token)
        if identity is None:
            return None

        identity.expires_at = datetime.now(timezone.utc) + timedelta(seconds=self._ttl)
        try:
            await self._redis.set(
                f"{SESSION_PREFIX}{token}",
                identity.model_dump_json(),
                ex=self._ttl,
            )
        except RedisError as e:
            raise SessionStoreError("Failed to refresh session", original_error=e)
        return identity

    async def update_session(self, token: str, **changes) -> Optional[Identity]:
        """Rewrite fields of a live session (e.g. after email verification)."""
        identity = await self.get_session(token)
        if identity is None:
            return None

        updated = identity.model_copy(update=changes)
        remaining = int((updated.expires_at - datetime.now(timezone.utc)).total_seconds())
        try:
            await self._redis.set(
                f"{SESSION_PREFIX}{token}",
                updated.model_dump_json(),
                ex=max(remaining, 1),
            )
        except RedisError as e:
            raise SessionStoreError("Failed to update session", original_error=e)
        return updated

    async def delete_session(self, token: str) -> None:
        try:
            await self._redis.delete(f"{SESSION_PREFIX}{token}")
        except RedisError as e:
            raise SessionStoreError("Failed to delete session", original_error=e)

    # =========================================================================
    # Per-user index
    # =========================================================================

    async def get_user_session_tokens(self, user_id: str) -> List[str]:
        raw = await self._redis.get(f"{USER_SESSIONS_PREFIX}{user_id}")
        if not raw:
            return []
        try:
            tokens = json.loads(raw)
        except ValueError:
            return []
        return [t for t in tokens if isinstance(t, str)]

    async def _track_user_session(self, user_id: str, token: str) -> None:
        tokens = await self.get_user_session_tokens(user_id)
        tokens.append(token)
        tokens = tokens[-self._index_limit:]
        await self._redis.set(
            f"{USER_SESSIONS_PREFIX}{user_id}",
            json.dumps(tokens),
            ex=self._ttl * 2,
        )

    async def delete_all_user_sessions(self, user_id: str) -> int:
        """
        Revoke every tracked session of a user.

        Returns:
            Number of tokens revoked
        """
        try:
            tokens = await self.get_user_session_tokens(user_id)
            if tokens:
                await self._redis.delete(*[f"{SESSION_PREFIX}{t}" for t in tokens])
            await self._redis.delete(f"{USER_SESSIONS_PREFIX}{user_id}")
        except RedisError as e:
            raise SessionStoreError("Failed to revoke sessions", original_error=e)

        logger.info(f"[SESSION] Revoked {len(tokens)} sessions for user {user_id}")
        return len(tokens)


# =============================================================================
# Singleton
# =============================================================================

_redis_client: Optional[aioredis.Redis] = None
_session_store: Optional[SessionStore] = None


def get_redis_client() -> aioredis.Redis:
    """Shared redis.asyncio client built from REDIS_URL."""
    global _redis_client
    if _redis_client is None:
        _redis_client = aioredis.from_url(
            get_settings().redis_url,
            encoding="utf-8",
            decode_responses=True,
        )
    return _redis_client


def get_session_store() -> SessionStore:
    """Get or create the session store instance."""
    global _session_store
    if _session_store is None:
        _session_store = SessionStore(get_redis_client())
    return _session_store


async def close_session_store() -> None:
    """Close the Redis connection pool (called on app shutdown)."""
    global _redis_client, _session_store
    if _redis_client is not None:
        await _redis_client.aclose()
    _redis_client = None
    _session_store = None
