from datetime import datetime
from typing import Sequence

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError

from app.exceptions import PersistenceError
from app.models.base import utcnow
from app.models.credential import Credential
from app.models.tag import credential_tags
from app.repos.base import BaseRepo


class CredentialRepo(BaseRepo[Credential]):
    """Repository for stored mailbox credentials, always scoped to the owning account."""

    def __init__(self) -> None:
        super().__init__(Credential)

    def _filter(self, account_id: int, keyword: str | None) -> list[sa.ColumnElement[bool]]:
        clauses: list[sa.ColumnElement[bool]] = [Credential.account_id == account_id]
        if keyword:
            pattern = f"%{keyword}%"
            clauses.append(sa.or_(Credential.email_address.ilike(pattern), Credential.remark.ilike(pattern)))
        return clauses

    async def list_for_account(
        self, account_id: int, limit: int, offset: int, keyword: str | None = None
    ) -> Sequence[Credential]:
        """Page of credentials, newest first."""
        query = (
            self.base_stmt.where(*self._filter(account_id, keyword))
            .order_by(Credential.created_at.desc(), Credential.id.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self.execute(query)
        return result.all()

    async def count_for_account(self, account_id: int, keyword: str | None = None) -> int:
        query = sa.select(sa.func.count(Credential.id)).where(*self._filter(account_id, keyword))
        return int(await self._db.session.scalar(query) or 0)

    async def get_by_address(self, account_id: int, email_address: str) -> Credential | None:
        query = self.base_stmt.where(Credential.account_id == account_id, Credential.email_address == email_address)
        result = await self.execute(query)
        return result.one_or_none()

    async def get_existing_addresses(self, account_id: int, addresses: Sequence[str]) -> set[str]:
        """Return which of the given addresses are already stored for the account, in one query."""
        if not addresses:
            return set()
        query = sa.select(Credential.email_address).where(
            Credential.account_id == account_id, Credential.email_address.in_(list(dict.fromkeys(addresses)))
        )
        result = await self._db.session.execute(query)
        return set(result.scalars().all())

    async def get_many(self, ids: Sequence[int]) -> Sequence[Credential]:
        if not ids:
            return []
        query = self.base_stmt.where(Credential.id.in_(list(dict.fromkeys(ids)))).order_by(Credential.id)
        result = await self.execute(query)
        return result.all()

    async def add_many(self, credentials: Sequence[Credential]) -> None:
        """Insert all credentials inside one savepoint; either every row lands or none does."""
        if not credentials:
            return
        try:
            async with self._db.session.begin_nested():
                self._db.session.add_all(credentials)
        except IntegrityError as exc:
            raise PersistenceError(f"Failed to store {len(credentials)} credentials: {exc.orig}") from exc

    async def delete_many(self, account_id: int, ids: Sequence[int]) -> int:
        """Delete credentials and their tag associations inside one savepoint."""
        if not ids:
            return 0
        id_set = list(dict.fromkeys(ids))
        try:
            async with self._db.session.begin_nested():
                await self._db.session.execute(
                    sa.delete(credential_tags).where(credential_tags.c.credential_id.in_(id_set))
                )
                result = await self._db.session.execute(
                    sa.delete(Credential)
                    .where(Credential.account_id == account_id, Credential.id.in_(id_set))
                    .execution_options(synchronize_session="fetch")
                )
        except IntegrityError as exc:
            raise PersistenceError(f"Failed to delete credentials: {exc.orig}") from exc
        return int(result.rowcount or 0)

    async def touch_last_operation(self, credential: Credential, when: datetime | None = None) -> None:
        credential.last_operation_at = when or utcnow()
        await self.flush()

    async def refresh_tags(self, credential: Credential) -> Credential:
        """Reload the tag collection after the association table changed underneath it."""
        await self._db.session.refresh(credential, attribute_names=["tags"])
        return credential
