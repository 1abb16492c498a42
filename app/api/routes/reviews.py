"""
Review Routes

Order reviews, seller responses and public rating summaries.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, status

from app.actions.reviews import ReviewActions
from app.api.dependencies import IdentityDep, NotifierDep, OptionalIdentityDep, action_response
from app.domain.marketplace import CreateReviewRequest, ReviewResponseRequest, ReviewType
from app.infrastructure.db.dependencies import SessionDep
from app.infrastructure.db.repositories.review_repository import DEFAULT_REVIEW_LIMIT


router = APIRouter(prefix="/reviews")


def get_review_actions(session: SessionDep, notifier: NotifierDep) -> ReviewActions:
    return ReviewActions(session, notifier)


ReviewActionsDep = Annotated[ReviewActions, Depends(get_review_actions)]


@router.post("")
async def create_review(body: CreateReviewRequest, identity: IdentityDep, actions: ReviewActionsDep):
    result = await actions.create_review(identity, body)
    return action_response(result, status_code=status.HTTP_201_CREATED)


@router.post("/{review_id}/response")
async def respond_to_review(
    review_id: str,
    body: ReviewResponseRequest,
    identity: IdentityDep,
    actions: ReviewActionsDep,
):
    return action_response(await actions.respond_to_review(identity, review_id, body.response))


@router.get("/users/{user_id}")
async def get_reviews_for_user(
    user_id: str,
    actions: ReviewActionsDep,
    review_type: Optional[ReviewType] = Query(None, alias="type"),
    limit: int = Query(DEFAULT_REVIEW_LIMIT, ge=1, le=100),
):
    """Reviews the user received."""
    return action_response(await actions.get_reviews_for_user(user_id, review_type, limit))


@router.get("/users/{user_id}/given")
async def get_reviews_by_user(user_id: str, actions: ReviewActionsDep):
    return action_response(await actions.get_reviews_by_user(user_id))


@router.get("/users/{user_id}/stats")
async def get_user_stats(user_id: str, actions: ReviewActionsDep):
    return action_response(await actions.get_user_stats(user_id))


@router.get("/orders/{order_id}")
async def get_order_reviews(order_id: str, identity: OptionalIdentityDep, actions: ReviewActionsDep):
    return action_response(await actions.get_order_reviews(identity, order_id))


@router.get("/orders/{order_id}/eligibility")
async def can_review_order(order_id: str, identity: OptionalIdentityDep, actions: ReviewActionsDep):
    return action_response(await actions.can_review_order(identity, order_id))
