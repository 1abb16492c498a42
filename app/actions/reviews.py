"""
Review Actions

Both parties of a completed order may review each other once. Buyer reviews
feed the seller's public rating and can receive one seller response.
"""

import logging
import math
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.exc import IntegrityError

from app.actions.base import BaseActions
from app.domain.marketplace import CreateReviewRequest, OrderStatus, ReviewType
from app.domain.models import ActionResult, Identity
from app.domain.notifications import NotificationCreate, NotificationType
from app.infrastructure.db.models.base import utcnow
from app.infrastructure.db.models.review import Review
from app.infrastructure.db.repositories.catalog_repository import ServiceRepository
from app.infrastructure.db.repositories.order_repository import OrderRepository
from app.infrastructure.db.repositories.project_repository import ProjectRepository
from app.infrastructure.db.repositories.review_repository import DEFAULT_REVIEW_LIMIT, ReviewRepository
from app.infrastructure.db.repositories.user_repository import UserRepository


logger = logging.getLogger(__name__)

MIN_REVIEW_LENGTH = 10
ALREADY_REVIEWED = "You have already reviewed this order"

CRITERIA = ("communication", "quality", "value", "timeliness")


def _round1(value: float) -> float:
    """Round half up to one decimal place."""
    return math.floor(value * 10 + 0.5) / 10


def summarize_ratings(reviews: Iterable[Review]) -> Dict[str, Any]:
    """
    Average rating, star histogram and per-criterion averages.

    Criteria averages only count reviews that rated the criterion and are
    None when none did.
    """
    reviews = list(reviews)
    stars = {star: 0 for star in range(1, 6)}
    sums = {name: [0, 0] for name in CRITERIA}
    total = 0

    for review in reviews:
        total += review.overall_rating
        if review.overall_rating in stars:
            stars[review.overall_rating] += 1
        for name in CRITERIA:
            rating = getattr(review, f"{name}_rating")
            if rating:
                sums[name][0] += rating
                sums[name][1] += 1

    summary = {
        "average_rating": _round1(total / len(reviews)) if reviews else 0,
        "total_reviews": len(reviews),
        "five_star_count": stars[5],
        "four_star_count": stars[4],
        "three_star_count": stars[3],
        "two_star_count": stars[2],
        "one_star_count": stars[1],
    }
    for name, (criterion_sum, count) in sums.items():
        summary[f"avg_{name}"] = _round1(criterion_sum / count) if count else None
    return summary


class ReviewActions(BaseActions):
    def __init__(self, session, notifier=None):
        super().__init__(session, notifier)
        self.reviews = ReviewRepository(session)
        self.orders = OrderRepository(session)
        self.users = UserRepository(session)
        self.services = ServiceRepository(session)
        self.projects = ProjectRepository(session)

    async def _render(self, reviews: List[Review]) -> List[Dict[str, Any]]:
        """Attach reviewer and order details."""
        rendered = []
        for review in reviews:
            reviewer = await self.users.get_by_id(review.reviewer_id)
            order = await self.orders.get_by_id(review.order_id)

            order_details = None
            if order is not None:
                order_details = {"order_number": order.order_number}
                if order.service_id:
                    service = await self.services.get_by_id(order.service_id)
                    if service:
                        order_details["service_title"] = service.title
                if order.project_id:
                    project = await self.projects.get_by_id(order.project_id)
                    if project:
                        order_details["project_title"] = project.title

            rendered.append(
                {
                    **review.model_dump(),
                    "reviewer": {
                        "id": review.reviewer_id,
                        "name": reviewer.name if reviewer else None,
                        "avatar_url": reviewer.avatar_url if reviewer else None,
                    },
                    "order": order_details,
                }
            )
        return rendered

    # =========================================================================
    # Writing
    # =========================================================================

    async def create_review(self, identity: Optional[Identity], data: CreateReviewRequest) -> ActionResult:
        denied = self.require_identity(identity)
        if denied:
            return denied
        if not 1 <= data.overall_rating <= 5:
            return ActionResult.fail("Rating must be between 1 and 5")
        comment = data.comment.strip()
        if len(comment) < MIN_REVIEW_LENGTH:
            return ActionResult.fail(f"Review must be at least {MIN_REVIEW_LENGTH} characters")

        order = await self.orders.get_by_id(data.order_id)
        if order is None:
            return ActionResult.fail("Order not found")

        is_buyer = order.buyer_id == identity.user_id
        is_seller = order.seller_id == identity.user_id
        if not is_buyer and not is_seller:
            return ActionResult.fail("You are not part of this order")
        if order.status != OrderStatus.COMPLETED.value:
            return ActionResult.fail("Can only review completed orders")
        if (is_buyer and order.buyer_has_reviewed) or (is_seller and order.seller_has_reviewed):
            return ActionResult.fail(ALREADY_REVIEWED)

        review_type = ReviewType.BUYER_TO_SELLER if is_buyer else ReviewType.SELLER_TO_BUYER
        reviewee_id = order.seller_id if is_buyer else order.buyer_id

        try:
            async with self.session.begin_nested():
                review = await self.reviews.create(
                    Review(
                        order_id=order.id,
                        reviewer_id=identity.user_id,
                        reviewee_id=reviewee_id,
                        review_type=review_type.value,
                        overall_rating=data.overall_rating,
                        communication_rating=data.communication_rating,
                        quality_rating=data.quality_rating,
                        value_rating=data.value_rating,
                        timeliness_rating=data.timeliness_rating,
                        title=data.title or None,
                        comment=comment,
                    )
                )
        except IntegrityError:
            return ActionResult.fail(ALREADY_REVIEWED)

        if is_buyer:
            order.buyer_has_reviewed = True
        else:
            order.seller_has_reviewed = True
        await self.orders.save(order)

        await self.notifier.notify(
            NotificationCreate(
                user_id=reviewee_id,
                type=NotificationType.REVIEW_RECEIVED,
                title="New Review Received",
                message=(
                    f"You received a {data.overall_rating}-star review for order "
                    f"{order.order_number}"
                ),
                entity_type="review",
                entity_id=review.id,
                send_email=True,
                email_data={"rating": data.overall_rating, "order_number": order.order_number},
            )
        )

        logger.info(f"Review {review.id} left on order {order.id} by {identity.user_id}")
        return ActionResult.ok(review_id=review.id)

    async def respond_to_review(
        self,
        identity: Optional[Identity],
        review_id: str,
        response: str,
    ) -> ActionResult:
        """The seller's single public reply to a buyer review."""
        denied = self.require_identity(identity)
        if denied:
            return denied
        response = (response or "").strip()
        if len(response) < MIN_REVIEW_LENGTH:
            return ActionResult.fail(f"Response must be at least {MIN_REVIEW_LENGTH} characters")

        review = await self.reviews.get_by_id(review_id)
        if review is None:
            return ActionResult.fail("Review not found")
        if review.reviewee_id != identity.user_id:
            return ActionResult.fail("Only the reviewed party can respond")
        if review.review_type != ReviewType.BUYER_TO_SELLER.value:
            return ActionResult.fail("Can only respond to buyer reviews")
        if review.seller_response:
            return ActionResult.fail("You have already responded to this review")

        review.seller_response = response
        review.seller_response_at = utcnow()
        await self.reviews.save(review)
        return ActionResult.ok()

    # =========================================================================
    # Queries
    # =========================================================================

    async def get_reviews_for_user(
        self,
        user_id: str,
        review_type: Optional[ReviewType] = None,
        limit: int = DEFAULT_REVIEW_LIMIT,
    ) -> ActionResult:
        reviews = await self.reviews.list_for_reviewee(user_id, review_type, limit)
        return ActionResult.ok(reviews=await self._render(reviews))

    async def get_reviews_by_user(self, user_id: str) -> ActionResult:
        reviews = await self.reviews.list_by_reviewer(user_id)
        return ActionResult.ok(reviews=await self._render(reviews))

    async def get_order_reviews(self, identity: Optional[Identity], order_id: str) -> ActionResult:
        """Reviews on an order. Logged-in outsiders see none."""
        if identity is not None:
            order = await self.orders.get_by_id(order_id)
            if order is not None and identity.user_id not in (order.buyer_id, order.seller_id):
                return ActionResult.ok(reviews=[])

        reviews = await self.reviews.list_for_order(order_id)
        return ActionResult.ok(reviews=await self._render(reviews))

    async def can_review_order(self, identity: Optional[Identity], order_id: str) -> ActionResult:
        nothing = ActionResult.ok(can_review=False, has_reviewed=False, review_type=None)
        if identity is None:
            return nothing

        order = await self.orders.get_by_id(order_id)
        if order is None:
            return nothing

        is_buyer = order.buyer_id == identity.user_id
        if not is_buyer and order.seller_id != identity.user_id:
            return nothing

        has_reviewed = order.buyer_has_reviewed if is_buyer else order.seller_has_reviewed
        review_type = ReviewType.BUYER_TO_SELLER if is_buyer else ReviewType.SELLER_TO_BUYER
        return ActionResult.ok(
            can_review=order.status == OrderStatus.COMPLETED.value and not has_reviewed,
            has_reviewed=has_reviewed,
            review_type=review_type.value,
        )

    async def get_user_stats(self, user_id: str) -> ActionResult:
        """Seller rating summary plus order completion rate."""
        stats = summarize_ratings(await self.reviews.list_seller_ratings(user_id))

        completed = await self.orders.count_for_seller(user_id, OrderStatus.COMPLETED.value)
        total = await self.orders.count_for_seller(user_id)
        stats["completed_orders"] = completed
        stats["completion_rate"] = math.floor(completed / total * 100 + 0.5) if total else 100
        # TODO: derive from first-reply latency in conversations
        stats["response_time_hours"] = None
        return ActionResult.ok(stats=stats)
