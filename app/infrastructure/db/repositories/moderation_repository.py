"""
Moderation Repository

Disputes and the admin audit trail.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.db.models.moderation import Dispute, AuditLog
from app.infrastructure.db.repositories.base_repository import BaseRepository


class DisputeRepository(BaseRepository[Dispute]):
    def __init__(self, session: AsyncSession):
        super().__init__(Dispute, session)

    async def list_by_status(self, status: Optional[str] = None) -> List[Dispute]:
        conditions = [Dispute.status == status] if status else []
        return await self.find_many(*conditions, order_by=[Dispute.created_at.desc()])


class AuditLogRepository(BaseRepository[AuditLog]):
    def __init__(self, session: AsyncSession):
        super().__init__(AuditLog, session)

    async def log(
        self,
        actor_id: str,
        actor_email: str,
        action: str,
        entity_type: str,
        entity_id: str,
        changes: Optional[Dict[str, Any]] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> AuditLog:
        return await self.create(
            AuditLog(
                actor_id=actor_id,
                actor_email=actor_email,
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                changes=changes or None,
                details=details or None,
            )
        )

    async def list_recent(self, limit: int = 100) -> List[AuditLog]:
        return await self.find_many(order_by=[AuditLog.created_at.desc()], limit=limit)
