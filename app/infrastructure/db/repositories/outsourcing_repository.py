"""
Outsourcing Repository

Outsource requests and invitations.
"""

from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.marketplace import ACTIVE_OUTSOURCE_STATUSES, InvitationStatus
from app.infrastructure.db.models.base import utcnow
from app.infrastructure.db.models.outsourcing import OutsourceRequest, OutsourceInvitation
from app.infrastructure.db.repositories.base_repository import BaseRepository


class OutsourceRequestRepository(BaseRepository[OutsourceRequest]):
    def __init__(self, session: AsyncSession):
        super().__init__(OutsourceRequest, session)

    async def get_active_for_order(self, order_id: str) -> Optional[OutsourceRequest]:
        return await self.find_one(
            OutsourceRequest.original_order_id == order_id,
            OutsourceRequest.status.in_(ACTIVE_OUTSOURCE_STATUSES),
        )

    async def list_by_outsourcer(self, user_id: str) -> List[OutsourceRequest]:
        return await self.find_many(
            OutsourceRequest.outsourcer_id == user_id,
            order_by=[OutsourceRequest.created_at.desc()],
        )

    async def list_by_worker(self, user_id: str) -> List[OutsourceRequest]:
        return await self.find_many(
            OutsourceRequest.outsourced_to_id == user_id,
            order_by=[OutsourceRequest.created_at.desc()],
        )


class InvitationRepository(BaseRepository[OutsourceInvitation]):
    def __init__(self, session: AsyncSession):
        super().__init__(OutsourceInvitation, session)

    async def list_by_request(self, request_id: str) -> List[OutsourceInvitation]:
        return await self.find_many(OutsourceInvitation.request_id == request_id)

    async def get_for_invitee(self, request_id: str, invitee_id: str) -> Optional[OutsourceInvitation]:
        return await self.find_one(
            OutsourceInvitation.request_id == request_id,
            OutsourceInvitation.invitee_id == invitee_id,
        )

    async def list_for_invitee(self, invitee_id: str) -> List[OutsourceInvitation]:
        return await self.find_many(
            OutsourceInvitation.invitee_id == invitee_id,
            order_by=[OutsourceInvitation.created_at.desc()],
        )

    async def reject_others(self, request_id: str, accepted_id: str) -> None:
        now = utcnow()
        await self._session.execute(
            update(OutsourceInvitation)
            .where(
                OutsourceInvitation.request_id == request_id,
                OutsourceInvitation.id != accepted_id,
                OutsourceInvitation.status == InvitationStatus.PENDING.value,
            )
            .values(status=InvitationStatus.REJECTED.value, responded_at=now, updated_at=now)
        )

    async def expire_pending(self, request_id: str) -> None:
        now = utcnow()
        await self._session.execute(
            update(OutsourceInvitation)
            .where(
                OutsourceInvitation.request_id == request_id,
                OutsourceInvitation.status == InvitationStatus.PENDING.value,
            )
            .values(status=InvitationStatus.EXPIRED.value, updated_at=now)
        )
