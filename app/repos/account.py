from app.models.account import Account
from app.repos.base import BaseRepo


class AccountRepo(BaseRepo[Account]):
    """Repository for Account model operations."""

    def __init__(self) -> None:
        super().__init__(Account)

    async def get_by_username(self, username: str) -> Account | None:
        """Get account by username."""
        query = self.base_stmt.where(Account.username == username)
        result = await self.execute(query)
        return result.one_or_none()

    async def get_or_create(self, username: str) -> Account:
        """Get the account with the given username, creating it on first use."""
        account = await self.get_by_username(username)
        if account is None:
            account = Account(username=username, last_login_at=None)
            await self.add(account)
        return account
