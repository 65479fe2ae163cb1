import logging
from typing import Sequence

from app.api.payloads.tags import TagCreate, TagResponse, TagUpdate
from app.controllers.audit.audit_log_writer import Actor, AuditLogWriter
from app.controllers.credential.credential_controller import CredentialController
from app.exceptions import EntityAlreadyExistError, EntityInUseError, EntityNotFoundError
from app.models.audit_log import OperationType, TargetType
from app.models.credential import Credential
from app.models.tag import Tag
from app.repos.credential import CredentialRepo
from app.repos.tag import TagRepo


class TagController:
    """Tag CRUD and attaching tags to stored credentials."""

    def __init__(
        self,
        tag_repo: TagRepo,
        credential_repo: CredentialRepo,
        credential_controller: CredentialController,
        audit_log_writer: AuditLogWriter,
    ) -> None:
        self._logger = logging.getLogger(__name__)
        self._tag_repo = tag_repo
        self._credential_repo = credential_repo
        self._credential_controller = credential_controller
        self._audit_log_writer = audit_log_writer

    async def list_tags(self) -> list[TagResponse]:
        tags = await self._tag_repo.list_all()
        counts = await self._tag_repo.credential_counts([tag.id for tag in tags])
        return [self._to_response(tag, counts.get(tag.id, 0)) for tag in tags]

    async def get(self, tag_id: int) -> Tag:
        tag = await self._tag_repo.get(tag_id)
        if tag is None:
            raise EntityNotFoundError(f"Tag {tag_id} not found")
        return tag

    async def create(self, actor: Actor, payload: TagCreate) -> TagResponse:
        name = payload.name.strip()
        if await self._tag_repo.get_by_name(name):
            raise EntityAlreadyExistError(f"Tag '{name}' already exists")

        tag = Tag(name=name, description=payload.description, color=payload.color)
        await self._tag_repo.add(tag)
        await self._audit_log_writer.record(
            actor, OperationType.tag_created, TargetType.tag, tag.id, f"Created tag {tag.name}"
        )
        return self._to_response(tag, 0)

    async def update(self, actor: Actor, tag_id: int, payload: TagUpdate) -> TagResponse:
        tag = await self.get(tag_id)
        values = payload.model_dump(exclude_none=True)
        if "name" in values:
            values["name"] = values["name"].strip()
            existing = await self._tag_repo.get_by_name(values["name"])
            if existing is not None and existing.id != tag.id:
                raise EntityAlreadyExistError(f"Tag '{values['name']}' already exists")

        if values:
            await self._tag_repo.update(tag, values)
            await self._audit_log_writer.record(
                actor, OperationType.tag_updated, TargetType.tag, tag.id, f"Updated tag {tag.name}"
            )
        return self._to_response(tag, await self._tag_repo.usage_count(tag.id))

    async def delete(self, actor: Actor, tag_id: int) -> None:
        tag = await self.get(tag_id)
        usage = await self._tag_repo.usage_count(tag_id)
        if usage > 0:
            raise EntityInUseError(f"Tag '{tag.name}' is used by {usage} emails and cannot be deleted")

        name = tag.name
        await self._tag_repo.delete(tag)
        await self._audit_log_writer.record(
            actor, OperationType.tag_deleted, TargetType.tag, tag_id, f"Deleted tag {name}"
        )

    async def tag_credential(self, actor: Actor, credential_id: int, tag_id: int) -> Credential:
        credential = await self._credential_controller.get(actor.account_id, credential_id)
        tag = await self.get(tag_id)
        await self._tag_repo.attach([credential.id], tag.id)
        await self._audit_log_writer.record(
            actor,
            OperationType.email_tagged,
            TargetType.email,
            credential.id,
            f"Tagged {credential.email_address} with {tag.name}",
        )
        return await self._credential_repo.refresh_tags(credential)

    async def untag_credential(self, actor: Actor, credential_id: int, tag_id: int) -> Credential:
        credential = await self._credential_controller.get(actor.account_id, credential_id)
        tag = await self.get(tag_id)
        await self._tag_repo.detach([credential.id], tag.id)
        await self._audit_log_writer.record(
            actor,
            OperationType.email_untagged,
            TargetType.email,
            credential.id,
            f"Removed tag {tag.name} from {credential.email_address}",
        )
        return await self._credential_repo.refresh_tags(credential)

    async def batch_tag(self, actor: Actor, credential_ids: Sequence[int], tag_id: int) -> int:
        """Attach a tag to several credentials; every id must belong to the caller."""
        tag = await self.get(tag_id)
        credentials = await self._credential_controller.get_many(actor.account_id, credential_ids)
        affected = await self._tag_repo.attach([credential.id for credential in credentials], tag.id)
        await self._audit_log_writer.record(
            actor,
            OperationType.batch_tag_emails,
            TargetType.tag,
            tag.id,
            f"Tagged {len(credentials)} emails with {tag.name}",
        )
        return affected

    async def batch_untag(self, actor: Actor, credential_ids: Sequence[int], tag_id: int) -> int:
        tag = await self.get(tag_id)
        credentials = await self._credential_controller.get_many(actor.account_id, credential_ids)
        affected = await self._tag_repo.detach([credential.id for credential in credentials], tag.id)
        await self._audit_log_writer.record(
            actor,
            OperationType.batch_untag_emails,
            TargetType.tag,
            tag.id,
            f"Removed tag {tag.name} from {len(credentials)} emails",
        )
        return affected

    @staticmethod
    def _to_response(tag: Tag, email_count: int) -> TagResponse:
        return TagResponse(
            id=tag.id,
            name=tag.name,
            description=tag.description,
            color=tag.color,
            email_count=email_count,
            created_at=tag.created_at,
            updated_at=tag.updated_at,
        )
