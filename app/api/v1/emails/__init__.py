"""
Emails API router - stored mailbox credentials and the mail operations run against them.
"""

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, File, Path, Query, UploadFile

from app.api.middlewares.authentication import CurrentActor
from app.api.payloads.common import APIResponse, IdListRequest
from app.api.payloads.credentials import (
    BatchClearData,
    BatchCreateData,
    BatchCredentialCreate,
    BatchDeleteData,
    CredentialCreate,
    CredentialDetail,
    CredentialListData,
    CredentialResponse,
    CredentialUpdate,
    TagAssignRequest,
)
from app.api.payloads.messages import CanonicalMessage, MailboxClearedData, MessageListData
from app.api.utils.errors import error_responses
from app.container import ApplicationContainer
from app.controllers.credential.credential_controller import CredentialController
from app.controllers.gateway.models import Mailbox
from app.controllers.tag.tag_controller import TagController

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

router = APIRouter()

CredentialControllerDep = Depends(Provide[ApplicationContainer.controllers.credential_controller])
TagControllerDep = Depends(Provide[ApplicationContainer.controllers.tag_controller])


@router.get("", response_model=APIResponse[CredentialListData], summary="List stored emails")
@inject
async def list_emails(
    actor: CurrentActor,
    limit: int = Query(DEFAULT_PAGE_SIZE, description="Page size, 1 to 100"),
    offset: int = Query(0, description="Number of entries to skip"),
    keyword: str | None = Query(None, description="Substring matched against address and remark"),
    credential_controller: CredentialController = CredentialControllerDep,
) -> APIResponse[CredentialListData]:
    """
    List the caller's credentials, newest first.

    Out of range paging values fall back to the defaults instead of failing the request.
    """
    if limit < 1 or limit > MAX_PAGE_SIZE:
        limit = DEFAULT_PAGE_SIZE
    offset = max(offset, 0)
    data = await credential_controller.search(actor.account_id, limit, offset, keyword)
    return APIResponse(data=data)


@router.post(
    "",
    response_model=APIResponse[CredentialResponse],
    responses=error_responses(400, 404, 502, 504),
    summary="Add an email",
    description="Validates the credentials against the mail gateway unless validation is disabled, then stores them",
)
@inject
async def add_email(
    payload: CredentialCreate,
    actor: CurrentActor,
    credential_controller: CredentialController = CredentialControllerDep,
) -> APIResponse[CredentialResponse]:
    credential = await credential_controller.add(actor, payload)
    return APIResponse(message="Email added", data=CredentialResponse.model_validate(credential))


@router.post(
    "/batch",
    response_model=APIResponse[BatchCreateData],
    responses=error_responses(400),
    summary="Add up to 30 emails",
    description="Validates every email concurrently; failures are reported per item and do not stop the batch",
)
@inject
async def batch_add_emails(
    payload: BatchCredentialCreate,
    actor: CurrentActor,
    credential_controller: CredentialController = CredentialControllerDep,
) -> APIResponse[BatchCreateData]:
    data = await credential_controller.batch_add(actor, payload.emails)
    return APIResponse(message=f"{data.success_count} emails added, {data.error_count} failed", data=data)


@router.post(
    "/import",
    response_model=APIResponse[BatchCreateData],
    responses=error_responses(400),
    summary="Import emails from a file",
    description=(
        "Accepts a .txt or .csv file with one email per line: address----password----client_id----refresh_token"
    ),
)
@inject
async def import_emails(
    actor: CurrentActor,
    file: UploadFile = File(...),
    credential_controller: CredentialController = CredentialControllerDep,
) -> APIResponse[BatchCreateData]:
    content = await file.read()
    data = await credential_controller.import_file(actor, file.filename, file.content_type, content)
    return APIResponse(message=f"{data.success_count} emails imported, {data.error_count} failed", data=data)


@router.delete(
    "/batch", response_model=APIResponse[BatchDeleteData], responses=error_responses(403, 404), summary="Delete emails"
)
@inject
async def batch_delete_emails(
    payload: IdListRequest,
    actor: CurrentActor,
    credential_controller: CredentialController = CredentialControllerDep,
) -> APIResponse[BatchDeleteData]:
    deleted = await credential_controller.batch_delete(actor, payload.email_ids)
    return APIResponse(message=f"{deleted} emails deleted", data=BatchDeleteData(deleted_count=deleted))


@router.post("/batch-clear-inbox", response_model=APIResponse[BatchClearData], summary="Clear several inboxes")
@inject
async def batch_clear_inbox(
    payload: IdListRequest,
    actor: CurrentActor,
    credential_controller: CredentialController = CredentialControllerDep,
) -> APIResponse[BatchClearData]:
    data = await credential_controller.batch_clear_inbox(actor, payload.email_ids)
    return APIResponse(message=f"{data.success_count} inboxes cleared, {data.error_count} failed", data=data)


@router.get(
    "/{email_id}",
    response_model=APIResponse[CredentialDetail],
    responses=error_responses(403, 404),
    summary="Get one email with its secrets",
)
@inject
async def get_email(
    actor: CurrentActor,
    email_id: int = Path(..., example=1),
    credential_controller: CredentialController = CredentialControllerDep,
) -> APIResponse[CredentialDetail]:
    credential = await credential_controller.get(actor.account_id, email_id)
    return APIResponse(data=CredentialDetail.model_validate(credential))


@router.put(
    "/{email_id}",
    response_model=APIResponse[CredentialResponse],
    responses=error_responses(400, 403, 404, 502, 504),
    summary="Replace an email's credentials",
)
@inject
async def update_email(
    payload: CredentialUpdate,
    actor: CurrentActor,
    email_id: int = Path(..., example=1),
    credential_controller: CredentialController = CredentialControllerDep,
) -> APIResponse[CredentialResponse]:
    credential = await credential_controller.update(actor, email_id, payload)
    return APIResponse(message="Email updated", data=CredentialResponse.model_validate(credential))


@router.delete(
    "/{email_id}", response_model=APIResponse[None], responses=error_responses(403, 404), summary="Delete an email"
)
@inject
async def delete_email(
    actor: CurrentActor,
    email_id: int = Path(..., example=1),
    credential_controller: CredentialController = CredentialControllerDep,
) -> APIResponse[None]:
    await credential_controller.delete(actor, email_id)
    return APIResponse(message="Email deleted")


@router.get(
    "/{email_id}/latest",
    response_model=APIResponse[CanonicalMessage],
    responses=error_responses(403, 404, 502, 504),
    summary="Fetch the latest message",
    description="Mailbox is INBOX or Junk; any other value reads the inbox",
)
@inject
async def get_latest_mail(
    actor: CurrentActor,
    email_id: int = Path(..., example=1),
    mailbox: str | None = Query(None, example="INBOX"),
    credential_controller: CredentialController = CredentialControllerDep,
) -> APIResponse[CanonicalMessage]:
    message = await credential_controller.fetch_latest(actor, email_id, Mailbox.parse(mailbox))
    return APIResponse(data=message)


@router.get(
    "/{email_id}/all",
    response_model=APIResponse[MessageListData],
    responses=error_responses(403, 404, 502, 504),
    summary="Fetch every message of a mailbox",
)
@inject
async def get_all_mails(
    actor: CurrentActor,
    email_id: int = Path(..., example=1),
    mailbox: str | None = Query(None, example="INBOX"),
    credential_controller: CredentialController = CredentialControllerDep,
) -> APIResponse[MessageListData]:
    selected = Mailbox.parse(mailbox)
    messages = await credential_controller.fetch_all(actor, email_id, selected)
    return APIResponse(
        data=MessageListData(email_id=email_id, mailbox=selected.value, messages=messages, total=len(messages))
    )


@router.delete(
    "/{email_id}/inbox",
    response_model=APIResponse[MailboxClearedData],
    responses=error_responses(403, 404, 502, 504),
    summary="Clear the inbox",
)
@inject
async def clear_inbox(
    actor: CurrentActor,
    email_id: int = Path(..., example=1),
    credential_controller: CredentialController = CredentialControllerDep,
) -> APIResponse[MailboxClearedData]:
    message = await credential_controller.clear_mailbox(actor, email_id, Mailbox.INBOX)
    return APIResponse(
        message="Inbox cleared",
        data=MailboxClearedData(email_id=email_id, mailbox=Mailbox.INBOX.value, message=message),
    )


@router.delete(
    "/{email_id}/junk",
    response_model=APIResponse[MailboxClearedData],
    responses=error_responses(403, 404, 502, 504),
    summary="Clear the junk folder",
)
@inject
async def clear_junk(
    actor: CurrentActor,
    email_id: int = Path(..., example=1),
    credential_controller: CredentialController = CredentialControllerDep,
) -> APIResponse[MailboxClearedData]:
    message = await credential_controller.clear_mailbox(actor, email_id, Mailbox.JUNK)
    return APIResponse(
        message="Junk cleared",
        data=MailboxClearedData(email_id=email_id, mailbox=Mailbox.JUNK.value, message=message),
    )


@router.put(
    "/{email_id}/tags",
    response_model=APIResponse[CredentialResponse],
    responses=error_responses(403, 404),
    summary="Tag an email",
)
@inject
async def tag_email(
    payload: TagAssignRequest,
    actor: CurrentActor,
    email_id: int = Path(..., example=1),
    tag_controller: TagController = TagControllerDep,
) -> APIResponse[CredentialResponse]:
    credential = await tag_controller.tag_credential(actor, email_id, payload.tag_id)
    return APIResponse(message="Tag added", data=CredentialResponse.model_validate(credential))


@router.delete(
    "/{email_id}/tags/{tag_id}",
    response_model=APIResponse[CredentialResponse],
    responses=error_responses(403, 404),
    summary="Remove a tag from an email",
)
@inject
async def untag_email(
    actor: CurrentActor,
    email_id: int = Path(..., example=1),
    tag_id: int = Path(..., example=1),
    tag_controller: TagController = TagControllerDep,
) -> APIResponse[CredentialResponse]:
    credential = await tag_controller.untag_credential(actor, email_id, tag_id)
    return APIResponse(message="Tag removed", data=CredentialResponse.model_validate(credential))
