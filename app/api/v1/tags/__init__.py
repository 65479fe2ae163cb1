"""
Tags API router.
"""

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Path

from app.api.middlewares.authentication import CurrentActor
from app.api.payloads.common import APIResponse
from app.api.payloads.tags import BatchTagData, BatchTagRequest, TagCreate, TagResponse, TagUpdate
from app.api.utils.errors import error_responses
from app.container import ApplicationContainer
from app.controllers.tag.tag_controller import TagController

router = APIRouter()

TagControllerDep = Depends(Provide[ApplicationContainer.controllers.tag_controller])


@router.get("", response_model=APIResponse[list[TagResponse]], summary="List tags with their email counts")
@inject
async def list_tags(
    actor: CurrentActor, tag_controller: TagController = TagControllerDep
) -> APIResponse[list[TagResponse]]:
    return APIResponse(data=await tag_controller.list_tags())


@router.post("", response_model=APIResponse[TagResponse], responses=error_responses(400), summary="Create a tag")
@inject
async def create_tag(
    payload: TagCreate, actor: CurrentActor, tag_controller: TagController = TagControllerDep
) -> APIResponse[TagResponse]:
    return APIResponse(message="Tag created", data=await tag_controller.create(actor, payload))


@router.put(
    "/{tag_id}", response_model=APIResponse[TagResponse], responses=error_responses(400, 404), summary="Update a tag"
)
@inject
async def update_tag(
    payload: TagUpdate,
    actor: CurrentActor,
    tag_id: int = Path(..., example=1),
    tag_controller: TagController = TagControllerDep,
) -> APIResponse[TagResponse]:
    return APIResponse(message="Tag updated", data=await tag_controller.update(actor, tag_id, payload))


@router.delete(
    "/{tag_id}",
    response_model=APIResponse[None],
    responses=error_responses(400, 404),
    summary="Delete a tag",
    description="Fails while the tag is still attached to any email",
)
@inject
async def delete_tag(
    actor: CurrentActor,
    tag_id: int = Path(..., example=1),
    tag_controller: TagController = TagControllerDep,
) -> APIResponse[None]:
    await tag_controller.delete(actor, tag_id)
    return APIResponse(message="Tag deleted")


@router.post(
    "/batch-tag",
    response_model=APIResponse[BatchTagData],
    responses=error_responses(403, 404),
    summary="Tag several emails",
)
@inject
async def batch_tag(
    payload: BatchTagRequest, actor: CurrentActor, tag_controller: TagController = TagControllerDep
) -> APIResponse[BatchTagData]:
    affected = await tag_controller.batch_tag(actor, payload.email_ids, payload.tag_id)
    return APIResponse(message="Emails tagged", data=BatchTagData(tag_id=payload.tag_id, affected_count=affected))


@router.post(
    "/batch-untag",
    response_model=APIResponse[BatchTagData],
    responses=error_responses(403, 404),
    summary="Remove a tag from several emails",
)
@inject
async def batch_untag(
    payload: BatchTagRequest, actor: CurrentActor, tag_controller: TagController = TagControllerDep
) -> APIResponse[BatchTagData]:
    affected = await tag_controller.batch_untag(actor, payload.email_ids, payload.tag_id)
    return APIResponse(message="Emails untagged", data=BatchTagData(tag_id=payload.tag_id, affected_count=affected))
