"""
Outsourcing Actions

A Pro seller can delegate part of an in-flight order to another freelancer.
The request is offered to invitees; the first to accept is assigned and the
remaining invitations are rejected.
"""

import logging
from datetime import timedelta
from typing import List, Optional

from app.actions.base import BaseActions
from app.domain.marketplace import (
    CreateOutsourceRequest,
    InvitationStatus,
    OrderStatus,
    OutsourceStatus,
)
from app.domain.models import ActionResult, Identity
from app.domain.notifications import NotificationCreate, NotificationType
from app.domain.subscription import PRO_REQUIRED_MESSAGE
from app.infrastructure.db.models.base import utcnow
from app.infrastructure.db.models.outsourcing import OutsourceInvitation, OutsourceRequest
from app.infrastructure.db.repositories.order_repository import OrderRepository
from app.infrastructure.db.repositories.outsourcing_repository import (
    InvitationRepository,
    OutsourceRequestRepository,
)
from app.infrastructure.db.repositories.user_repository import UserRepository


logger = logging.getLogger(__name__)

INVITATION_TTL = timedelta(hours=48)

OUTSOURCEABLE_ORDER_STATUSES = (
    OrderStatus.IN_PROGRESS.value,
    OrderStatus.PENDING_REQUIREMENTS.value,
)


class OutsourcingActions(BaseActions):
    def __init__(self, session, notifier=None):
        super().__init__(session, notifier)
        self.requests = OutsourceRequestRepository(session)
        self.invitations = InvitationRepository(session)
        self.orders = OrderRepository(session)
        self.users = UserRepository(session)

    async def _send_invitations(
        self,
        request: OutsourceRequest,
        invitee_ids: List[str],
        message: Optional[str],
    ) -> int:
        """Create one invitation per distinct, existing invitee. Returns the count."""
        existing = {i.invitee_id for i in await self.invitations.list_by_request(request.id)}
        expires_at = utcnow() + INVITATION_TTL
        sent = 0

        for invitee_id in dict.fromkeys(invitee_ids):
            if invitee_id == request.outsourcer_id or invitee_id in existing:
                continue
            if await self.users.get_by_id(invitee_id) is None:
                logger.warning(f"Skipping unknown outsource invitee {invitee_id}")
                continue

            invitation = await self.invitations.create(
                OutsourceInvitation(
                    request_id=request.id,
                    invitee_id=invitee_id,
                    message=message,
                    expires_at=expires_at,
                )
            )
            await self.notifier.notify(
                NotificationCreate(
                    user_id=invitee_id,
                    type=NotificationType.SYSTEM,
                    title="New Outsourcing Invitation",
                    message=f"You've been invited to work on \"{request.title}\".",
                    entity_type="outsource_invitation",
                    entity_id=invitation.id,
                )
            )
            sent += 1
        return sent

    async def create_outsource_request(
        self,
        identity: Optional[Identity],
        data: CreateOutsourceRequest,
    ) -> ActionResult:
        denied = self.require_identity(identity)
        if denied:
            return denied
        if not await self.has_pro(identity.user_id):
            return ActionResult.fail(PRO_REQUIRED_MESSAGE)

        order = await self.orders.get_by_id(data.original_order_id)
        if order is None or order.seller_id != identity.user_id:
            return ActionResult.fail("Order not found")
        if order.status not in OUTSOURCEABLE_ORDER_STATUSES:
            return ActionResult.fail("Only active orders can be outsourced")
        if await self.requests.get_active_for_order(order.id):
            return ActionResult.fail("This order already has an active outsource request")

        request = await self.requests.create(
            OutsourceRequest(
                original_order_id=order.id,
                outsourcer_id=identity.user_id,
                category_id=data.category_id,
                title=data.title,
                description=data.description,
                requirements=data.requirements,
                amount=data.amount,
                delivery_days=data.delivery_days,
                deadline=utcnow() + timedelta(days=data.delivery_days),
                is_anonymous=data.is_anonymous,
            )
        )
        invited = await self._send_invitations(request, data.invitee_ids, data.message)

        logger.info(f"Outsource request {request.id} for order {order.id}: {invited} invitations")
        return ActionResult.ok(request_id=request.id, invitations_sent=invited)

    async def invite_to_outsource(
        self,
        identity: Optional[Identity],
        request_id: str,
        invitee_ids: List[str],
        message: Optional[str] = None,
    ) -> ActionResult:
        denied = self.require_identity(identity)
        if denied:
            return denied

        request = await self.requests.get_by_id(request_id)
        if request is None or request.outsourcer_id != identity.user_id:
            return ActionResult.fail("Outsource request not found")
        if request.status != OutsourceStatus.OPEN.value:
            return ActionResult.fail("This request is no longer accepting invitations")

        invited = await self._send_invitations(request, invitee_ids, message)
        return ActionResult.ok(invitations_sent=invited)

    async def _pending_invitation(
        self,
        identity: Identity,
        invitation_id: str,
    ) -> tuple[Optional[OutsourceInvitation], Optional[ActionResult]]:
        invitation = await self.invitations.get_by_id(invitation_id)
        if invitation is None or invitation.invitee_id != identity.user_id:
            return None, ActionResult.fail("Invitation not found")
        if invitation.status != InvitationStatus.PENDING.value:
            return None, ActionResult.fail("Invitation is no longer pending")
        if invitation.expires_at <= utcnow():
            invitation.status = InvitationStatus.EXPIRED.value
            await self.invitations.save(invitation)
            return None, ActionResult.fail("Invitation has expired")
        return invitation, None

    async def accept_invitation(self, identity: Optional[Identity], invitation_id: str) -> ActionResult:
        denied = self.require_identity(identity)
        if denied:
            return denied

        invitation, failure = await self._pending_invitation(identity, invitation_id)
        if failure:
            return failure

        request = await self.requests.get_by_id(invitation.request_id)
        if request is None or request.status != OutsourceStatus.OPEN.value:
            return ActionResult.fail("This request has already been assigned")

        now = utcnow()
        invitation.status = InvitationStatus.ACCEPTED.value
        invitation.responded_at = now
        await self.invitations.save(invitation)

        request.status = OutsourceStatus.ASSIGNED.value
        request.outsourced_to_id = identity.user_id
        request.assigned_at = now
        await self.requests.save(request)

        await self.invitations.reject_others(request.id, invitation.id)

        await self.notifier.notify(
            NotificationCreate(
                user_id=request.outsourcer_id,
                type=NotificationType.SYSTEM,
                title="Outsourcing Invitation Accepted",
                message=f"{identity.name or 'A freelancer'} accepted your request \"{request.title}\".",
                entity_type="outsource_request",
                entity_id=request.id,
            )
        )
        return ActionResult.ok(request_id=request.id)

    async def reject_invitation(self, identity: Optional[Identity], invitation_id: str) -> ActionResult:
        denied = self.require_identity(identity)
        if denied:
            return denied

        invitation, failure = await self._pending_invitation(identity, invitation_id)
        if failure:
            return failure

        invitation.status = InvitationStatus.REJECTED.value
        invitation.responded_at = utcnow()
        await self.invitations.save(invitation)
        return ActionResult.ok()

    async def cancel_outsource_request(self, identity: Optional[Identity], request_id: str) -> ActionResult:
        denied = self.require_identity(identity)
        if denied:
            return denied

        request = await self.requests.get_by_id(request_id)
        if request is None or request.outsourcer_id != identity.user_id:
            return ActionResult.fail("Outsource request not found")
        if request.status not in (OutsourceStatus.OPEN.value, OutsourceStatus.ASSIGNED.value):
            return ActionResult.fail("This request can no longer be cancelled")

        request.status = OutsourceStatus.CANCELLED.value
        await self.requests.save(request)
        await self.invitations.expire_pending(request.id)

        if request.outsourced_to_id:
            await self.notifier.notify(
                NotificationCreate(
                    user_id=request.outsourced_to_id,
                    type=NotificationType.SYSTEM,
                    title="Outsourcing Request Cancelled",
                    message=f"\"{request.title}\" was cancelled by the requester.",
                    entity_type="outsource_request",
                    entity_id=request.id,
                )
            )
        return ActionResult.ok()

    async def mark_outsource_delivered(self, identity: Optional[Identity], request_id: str) -> ActionResult:
        """Worker hands the work back to the outsourcer."""
        denied = self.require_identity(identity)
        if denied:
            return denied

        request = await self.requests.get_by_id(request_id)
        if request is None or request.outsourced_to_id != identity.user_id:
            return ActionResult.fail("Outsource request not found")
        if request.status not in (OutsourceStatus.ASSIGNED.value, OutsourceStatus.IN_PROGRESS.value):
            return ActionResult.fail("This request cannot be delivered")

        request.status = OutsourceStatus.DELIVERED.value
        request.delivered_at = utcnow()
        await self.requests.save(request)

        await self.notifier.notify(
            NotificationCreate(
                user_id=request.outsourcer_id,
                type=NotificationType.ORDER_DELIVERED,
                title="Outsourced Work Delivered",
                message=f"Work for \"{request.title}\" has been delivered.",
                entity_type="outsource_request",
                entity_id=request.id,
            )
        )
        return ActionResult.ok()

    async def complete_outsource(self, identity: Optional[Identity], request_id: str) -> ActionResult:
        denied = self.require_identity(identity)
        if denied:
            return denied

        request = await self.requests.get_by_id(request_id)
        if request is None or request.outsourcer_id != identity.user_id:
            return ActionResult.fail("Outsource request not found")
        if request.status != OutsourceStatus.DELIVERED.value:
            return ActionResult.fail("Work has not been delivered yet")

        request.status = OutsourceStatus.COMPLETED.value
        request.completed_at = utcnow()
        await self.requests.save(request)

        await self.notifier.notify(
            NotificationCreate(
                user_id=request.outsourced_to_id,
                type=NotificationType.ORDER_COMPLETED,
                title="Outsourced Work Completed",
                message=f"\"{request.title}\" was marked complete.",
                entity_type="outsource_request",
                entity_id=request.id,
            )
        )
        return ActionResult.ok()

    async def get_my_outsource_requests(self, identity: Optional[Identity]) -> ActionResult:
        """Requests the caller created and requests assigned to the caller."""
        denied = self.require_identity(identity)
        if denied:
            return denied

        created = await self.requests.list_by_outsourcer(identity.user_id)
        assigned = await self.requests.list_by_worker(identity.user_id)
        return ActionResult.ok(
            created=[r.model_dump() for r in created],
            assigned=[r.model_dump() for r in assigned],
        )

    async def get_my_outsource_work(self, identity: Optional[Identity]) -> ActionResult:
        """Requests assigned to the caller, newest first."""
        denied = self.require_identity(identity)
        if denied:
            return denied

        work = await self.requests.list_by_worker(identity.user_id)
        return ActionResult.ok(work=[self._public_view(r) for r in work])

    @staticmethod
    def _public_view(request: OutsourceRequest) -> dict:
        """Request as seen by workers; anonymous requests hide the outsourcer."""
        view = request.model_dump()
        if request.is_anonymous:
            view["outsourcer_id"] = None
        return view

    async def get_outsource_request_by_id(self, identity: Optional[Identity], request_id: str) -> ActionResult:
        """
        One request for its outsourcer, assigned worker or an invitee.

        Only the outsourcer sees the original order and the invitation list.
        """
        denied = self.require_identity(identity)
        if denied:
            return denied

        request = await self.requests.get_by_id(request_id)
        if request is None:
            return ActionResult.fail("Outsource request not found")

        if request.outsourcer_id != identity.user_id:
            is_worker = request.outsourced_to_id == identity.user_id
            if not is_worker and await self.invitations.get_for_invitee(request.id, identity.user_id) is None:
                return ActionResult.fail("Outsource request not found")
            return ActionResult.ok(request=self._public_view(request))

        order = await self.orders.get_by_id(request.original_order_id)
        invitations = await self.invitations.list_by_request(request.id)
        return ActionResult.ok(
            request={
                **request.model_dump(),
                "original_order": {
                    "order_number": order.order_number,
                    "total_amount": order.total_amount,
                    "delivery_deadline": order.delivery_deadline,
                } if order else None,
                "invitations": [i.model_dump() for i in invitations],
            }
        )

    async def get_my_invitations(self, identity: Optional[Identity]) -> ActionResult:
        denied = self.require_identity(identity)
        if denied:
            return denied

        invitations = []
        for invitation in await self.invitations.list_for_invitee(identity.user_id):
            request = await self.requests.get_by_id(invitation.request_id)
            invitations.append(
                {
                    **invitation.model_dump(),
                    "request": {
                        "id": request.id,
                        "title": request.title,
                        "description": request.description,
                        "amount": request.amount,
                        "delivery_days": request.delivery_days,
                        "status": request.status,
                        "outsourcer_id": None if request.is_anonymous else request.outsourcer_id,
                    } if request else None,
                }
            )
        return ActionResult.ok(invitations=invitations)
