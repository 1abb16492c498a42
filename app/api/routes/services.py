"""
Service & Category Routes

Fixed-price service listings and the public category catalog.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from app.actions.services import ServiceActions
from app.api.dependencies import IdentityDep, NotifierDep, action_response
from app.domain.marketplace import CreateServiceRequest, UpdateServiceRequest
from app.infrastructure.db.dependencies import SessionDep


router = APIRouter()


def get_service_actions(session: SessionDep, notifier: NotifierDep) -> ServiceActions:
    return ServiceActions(session, notifier)


ServiceActionsDep = Annotated[ServiceActions, Depends(get_service_actions)]


@router.get("/categories")
async def list_categories(actions: ServiceActionsDep):
    return action_response(await actions.get_categories())


@router.post("/services")
async def create_service(body: CreateServiceRequest, identity: IdentityDep, actions: ServiceActionsDep):
    result = await actions.create_service(identity, body)
    return action_response(result, status_code=status.HTTP_201_CREATED)


@router.get("/services/mine")
async def my_services(identity: IdentityDep, actions: ServiceActionsDep):
    return action_response(await actions.get_user_services(identity))


@router.get("/services/{slug}")
async def get_service(slug: str, actions: ServiceActionsDep):
    """Active listing by slug. Counts as a view."""
    return action_response(await actions.get_service_by_slug(slug))


@router.patch("/services/{service_id}")
async def update_service(
    service_id: str,
    body: UpdateServiceRequest,
    identity: IdentityDep,
    actions: ServiceActionsDep,
):
    return action_response(await actions.update_service(identity, service_id, body))


@router.post("/services/{service_id}/toggle")
async def toggle_service(service_id: str, identity: IdentityDep, actions: ServiceActionsDep):
    return action_response(await actions.toggle_service_status(identity, service_id))


@router.delete("/services/{service_id}")
async def delete_service(service_id: str, identity: IdentityDep, actions: ServiceActionsDep):
    return action_response(await actions.delete_service(identity, service_id))
