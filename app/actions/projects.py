"""
Project & Bid Actions

Buyers post projects; ID-verified freelancers bid on them. Free plans are
capped on bids; the project owner accepts one bid and the rest are rejected.
"""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError

from app.actions.base import BaseActions
from app.domain.marketplace import (
    FREE_BID_LIMIT_MESSAGE,
    BidStatus,
    CreateProjectRequest,
    ProjectStatus,
    SubmitBidRequest,
    slugify,
)
from app.domain.models import ActionResult, Identity
from app.domain.notifications import NotificationCreate, NotificationType
from app.domain.payments import cents_to_rands
from app.domain.subscription import get_max_bids
from app.infrastructure.db.models.base import new_id, utcnow
from app.infrastructure.db.models.project import Bid, Project
from app.infrastructure.db.repositories.catalog_repository import CategoryRepository
from app.infrastructure.db.repositories.project_repository import BidRepository, ProjectRepository


logger = logging.getLogger(__name__)


class ProjectActions(BaseActions):
    """Projects and bids."""

    def __init__(self, session, notifier=None):
        super().__init__(session, notifier)
        self.projects = ProjectRepository(session)
        self.bids = BidRepository(session)
        self.categories = CategoryRepository(session)

    # =========================================================================
    # Projects
    # =========================================================================

    async def create_project(
        self,
        identity: Optional[Identity],
        data: CreateProjectRequest,
    ) -> ActionResult:
        denied = self.require_verified(identity, "You must verify your ID to post projects")
        if denied:
            return denied

        if await self.categories.get_active(data.category_id) is None:
            return ActionResult.fail("Invalid category")

        if (
            data.budget_min is not None
            and data.budget_max is not None
            and data.budget_min > data.budget_max
        ):
            return ActionResult.fail("Minimum budget cannot exceed maximum budget")

        project_id = new_id()
        project = await self.projects.create(
            Project(
                id=project_id,
                buyer_id=identity.user_id,
                category_id=data.category_id,
                title=data.title,
                slug=f"{slugify(data.title)}-{project_id[:8]}",
                description=data.description,
                budget_type=data.budget_type.value,
                budget_min=data.budget_min,
                budget_max=data.budget_max,
                deadline=data.deadline,
                expected_duration=data.expected_duration,
                skills=data.skills,
                status=ProjectStatus.OPEN.value,
            )
        )
        logger.info(f"User {identity.user_id} posted project {project.id}")
        return ActionResult.ok(project_id=project.id, slug=project.slug)

    async def get_user_projects(self, identity: Optional[Identity]) -> ActionResult:
        denied = self.require_identity(identity)
        if denied:
            return denied
        projects = await self.projects.list_by_buyer(identity.user_id)
        return ActionResult.ok(projects=[p.model_dump() for p in projects])

    async def get_open_projects(self, limit: int = 50) -> ActionResult:
        projects = await self.projects.list_open(limit=min(limit, 50))
        return ActionResult.ok(projects=[p.model_dump() for p in projects])

    async def get_project_by_slug(self, slug: str) -> ActionResult:
        project = await self.projects.get_by_slug(slug)
        if project is None:
            return ActionResult.fail("Project not found")
        await self.projects.increment_views(project.id)
        return ActionResult.ok(project=project.model_dump())

    # =========================================================================
    # Bids
    # =========================================================================

    async def submit_bid(
        self,
        identity: Optional[Identity],
        data: SubmitBidRequest,
    ) -> ActionResult:
        denied = self.require_verified(identity, "You must verify your ID to submit bids")
        if denied:
            return denied

        project = await self.projects.get_by_id(data.project_id)
        if project is None or project.status != ProjectStatus.OPEN.value:
            return ActionResult.fail("Project not found or not accepting bids")
        if project.buyer_id == identity.user_id:
            return ActionResult.fail("You cannot bid on your own project")
        if await self.bids.get_for_bidder(project.id, identity.user_id):
            return ActionResult.fail("You have already submitted a bid on this project")

        subscription = await self.load_subscription(identity.user_id)
        if subscription is None:
            return ActionResult.fail("Subscription not found")

        max_bids = get_max_bids(await self.current_plan(identity.user_id))
        if max_bids != -1 and subscription.bids_used >= max_bids:
            return ActionResult.fail(FREE_BID_LIMIT_MESSAGE)

        try:
            async with self.session.begin_nested():
                bid = await self.bids.create(
                    Bid(
                        project_id=project.id,
                        bidder_id=identity.user_id,
                        amount=data.amount,
                        proposal=data.proposal,
                        delivery_days=data.delivery_days,
                        status=BidStatus.PENDING.value,
                    )
                )
        except IntegrityError:
            return ActionResult.fail("You have already submitted a bid on this project")

        await self.projects.increment_bid_count(project.id)
        await self.subscriptions.increment_usage(identity.user_id, "bids_used")

        await self.notifier.notify(
            NotificationCreate(
                user_id=project.buyer_id,
                type=NotificationType.NEW_BID,
                title="New Bid Received",
                message=(
                    f"{identity.name or 'A freelancer'} bid R{cents_to_rands(data.amount)} "
                    f"on \"{project.title}\""
                ),
                entity_type="project",
                entity_id=project.id,
                send_email=True,
                email_data={"project": project.title},
            )
        )
        return ActionResult.ok(bid_id=bid.id)

    async def get_user_bids(self, identity: Optional[Identity]) -> ActionResult:
        denied = self.require_identity(identity)
        if denied:
            return denied
        bids = await self.bids.list_by_bidder(identity.user_id)
        return ActionResult.ok(bids=[b.model_dump() for b in bids])

    async def get_project_bids(self, identity: Optional[Identity], project_id: str) -> ActionResult:
        """Bids on a project, visible to its owner only."""
        denied = self.require_identity(identity)
        if denied:
            return denied

        project = await self.projects.get_by_id(project_id)
        if project is None or project.buyer_id != identity.user_id:
            return ActionResult.fail("Project not found")

        bids = await self.bids.list_by_project(project.id)
        return ActionResult.ok(bids=[b.model_dump() for b in bids])

    async def accept_bid(self, identity: Optional[Identity], bid_id: str) -> ActionResult:
        denied = self.require_identity(identity)
        if denied:
            return denied

        bid = await self.bids.get_by_id(bid_id)
        if bid is None:
            return ActionResult.fail("Bid not found")

        project = await self.projects.get_by_id(bid.project_id)
        if project is None or project.buyer_id != identity.user_id:
            return ActionResult.fail("Project not found")
        if project.status != ProjectStatus.OPEN.value:
            return ActionResult.fail("Project is not accepting bids")
        if bid.status not in (BidStatus.PENDING.value, BidStatus.SHORTLISTED.value):
            return ActionResult.fail("Bid can no longer be accepted")

        now = utcnow()
        bid.status = BidStatus.ACCEPTED.value
        await self.bids.save(bid)
        await self.bids.reject_others(project.id, bid.id)

        project.status = ProjectStatus.IN_PROGRESS.value
        project.awarded_bid_id = bid.id
        project.awarded_at = now
        await self.projects.save(project)

        await self.notifier.notify(
            NotificationCreate(
                user_id=bid.bidder_id,
                type=NotificationType.BID_ACCEPTED,
                title="Your Bid Was Accepted!",
                message=f"Your bid on \"{project.title}\" was accepted.",
                entity_type="project",
                entity_id=project.id,
                send_email=True,
                email_data={"project": project.title},
            )
        )
        return ActionResult.ok(bid_id=bid.id, project_id=project.id)

    async def withdraw_bid(self, identity: Optional[Identity], bid_id: str) -> ActionResult:
        denied = self.require_identity(identity)
        if denied:
            return denied

        bid = await self.bids.get_by_id(bid_id)
        if bid is None or bid.bidder_id != identity.user_id:
            return ActionResult.fail("Bid not found")
        if bid.status not in (BidStatus.PENDING.value, BidStatus.SHORTLISTED.value):
            return ActionResult.fail("Only pending bids can be withdrawn")

        bid.status = BidStatus.WITHDRAWN.value
        await self.bids.save(bid)
        return ActionResult.ok(bid_id=bid.id)
