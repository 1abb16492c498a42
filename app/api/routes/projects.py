"""
Project & Bid Routes

Buyers post projects; verified freelancers bid on them.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from app.actions.projects import ProjectActions
from app.api.dependencies import IdentityDep, NotifierDep, action_response
from app.domain.marketplace import CreateProjectRequest, SubmitBidRequest
from app.infrastructure.db.dependencies import SessionDep


router = APIRouter()


def get_project_actions(session: SessionDep, notifier: NotifierDep) -> ProjectActions:
    return ProjectActions(session, notifier)


ProjectActionsDep = Annotated[ProjectActions, Depends(get_project_actions)]


# =============================================================================
# Projects
# =============================================================================

@router.get("/projects")
async def list_open_projects(
    actions: ProjectActionsDep,
    limit: int = Query(50, ge=1, le=100),
):
    return action_response(await actions.get_open_projects(limit=limit))


@router.post("/projects")
async def create_project(body: CreateProjectRequest, identity: IdentityDep, actions: ProjectActionsDep):
    result = await actions.create_project(identity, body)
    return action_response(result, status_code=status.HTTP_201_CREATED)


@router.get("/projects/mine")
async def my_projects(identity: IdentityDep, actions: ProjectActionsDep):
    return action_response(await actions.get_user_projects(identity))


@router.get("/projects/{slug}")
async def get_project(slug: str, actions: ProjectActionsDep):
    return action_response(await actions.get_project_by_slug(slug))


@router.get("/projects/{project_id}/bids")
async def project_bids(project_id: str, identity: IdentityDep, actions: ProjectActionsDep):
    """Bids on a project. Owner only."""
    return action_response(await actions.get_project_bids(identity, project_id))


# =============================================================================
# Bids
# =============================================================================

@router.post("/bids")
async def submit_bid(body: SubmitBidRequest, identity: IdentityDep, actions: ProjectActionsDep):
    result = await actions.submit_bid(identity, body)
    return action_response(result, status_code=status.HTTP_201_CREATED)


@router.get("/bids/mine")
async def my_bids(identity: IdentityDep, actions: ProjectActionsDep):
    return action_response(await actions.get_user_bids(identity))


@router.post("/bids/{bid_id}/accept")
async def accept_bid(bid_id: str, identity: IdentityDep, actions: ProjectActionsDep):
    return action_response(await actions.accept_bid(identity, bid_id))


@router.post("/bids/{bid_id}/withdraw")
async def withdraw_bid(bid_id: str, identity: IdentityDep, actions: ProjectActionsDep):
    return action_response(await actions.withdraw_bid(identity, bid_id))
