from typing import Sequence

import sqlalchemy as sa

from app.models.credential import Credential
from app.models.tag import Tag, credential_tags
from app.repos.base import BaseRepo


class TagRepo(BaseRepo[Tag]):
    """Repository for tags and the credential association table."""

    def __init__(self) -> None:
        super().__init__(Tag)

    async def get_by_name(self, name: str) -> Tag | None:
        query = self.base_stmt.where(Tag.name == name)
        result = await self.execute(query)
        return result.one_or_none()

    async def list_all(self) -> Sequence[Tag]:
        query = self.base_stmt.order_by(Tag.created_at.desc(), Tag.id.desc())
        result = await self.execute(query)
        return result.all()

    async def list_newest(self, limit: int) -> Sequence[Tag]:
        query = self.base_stmt.order_by(Tag.created_at.desc(), Tag.id.desc()).limit(limit)
        result = await self.execute(query)
        return result.all()

    async def count(self) -> int:
        return int(await self._db.session.scalar(sa.select(sa.func.count(Tag.id))) or 0)

    async def credential_counts(self, tag_ids: Sequence[int], account_id: int | None = None) -> dict[int, int]:
        """Number of associated credentials per tag, optionally limited to one account."""
        if not tag_ids:
            return {}
        query = sa.select(credential_tags.c.tag_id, sa.func.count(credential_tags.c.credential_id)).where(
            credential_tags.c.tag_id.in_(list(dict.fromkeys(tag_ids)))
        )
        if account_id is not None:
            query = query.join(Credential, Credential.id == credential_tags.c.credential_id).where(
                Credential.account_id == account_id
            )
        query = query.group_by(credential_tags.c.tag_id)
        result = await self._db.session.execute(query)
        counts = {tag_id: int(count) for tag_id, count in result.all()}
        return {tag_id: counts.get(tag_id, 0) for tag_id in tag_ids}

    async def usage_count(self, tag_id: int) -> int:
        query = sa.select(sa.func.count()).select_from(credential_tags).where(credential_tags.c.tag_id == tag_id)
        return int(await self._db.session.scalar(query) or 0)

    async def attach(self, credential_ids: Sequence[int], tag_id: int) -> int:
        """Associate the tag with each credential, skipping pairs that already exist."""
        if not credential_ids:
            return 0
        unique_ids = list(dict.fromkeys(credential_ids))
        existing_query = sa.select(credential_tags.c.credential_id).where(
            credential_tags.c.tag_id == tag_id, credential_tags.c.credential_id.in_(unique_ids)
        )
        existing = set((await self._db.session.execute(existing_query)).scalars().all())
        missing = [credential_id for credential_id in unique_ids if credential_id not in existing]
        if missing:
            await self._db.session.execute(
                sa.insert(credential_tags),
                [{"credential_id": credential_id, "tag_id": tag_id} for credential_id in missing],
            )
        # Loaded Credential.tags collections are stale now
        self._expire_credentials(credential_ids)
        return len(missing)

    async def detach(self, credential_ids: Sequence[int], tag_id: int) -> int:
        if not credential_ids:
            return 0
        unique_ids = list(dict.fromkeys(credential_ids))
        result = await self._db.session.execute(
            sa.delete(credential_tags).where(
                credential_tags.c.tag_id == tag_id, credential_tags.c.credential_id.in_(unique_ids)
            )
        )
        self._expire_credentials(credential_ids)
        return int(result.rowcount or 0)

    def _expire_credentials(self, credential_ids: Sequence[int]) -> None:
        ids = set(credential_ids)
        for instance in list(self._db.session.identity_map.values()):
            if isinstance(instance, Credential) and instance.id in ids:
                self._db.session.expire(instance, ["tags"])
