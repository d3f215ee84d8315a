"""Account registration, authentication and administration."""

import logging
from typing import List, Optional

from download_quota.errors import (
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    UnauthorizedError,
)
from download_quota.models import Account, AccountWithQuota, QuotaRecord
from download_quota.service.store.base import QuotaStore
from download_quota.utils.passwords import PasswordHasher

logger = logging.getLogger(__name__)


class AccountStore:
    """
    Façade over the store for account records.

    Usernames are opaque strings: compared case-sensitively and without
    normalization.
    """

    def __init__(
        self,
        store: QuotaStore,
        password_hasher: PasswordHasher,
        admin_username: str = "admin",
    ):
        """
        Args:
            store: Backend holding accounts and quotas
            password_hasher: Hasher used to store and verify passwords
            admin_username: Reserved identity that can never be deleted
        """
        self.store = store
        self.password_hasher = password_hasher
        self.admin_username = admin_username

    async def register(self, username: str, password: str) -> str:
        """
        Create an account and its default quota record.

        Returns:
            The registered username

        Raises:
            InvalidInputError: If a field is empty, the username contains "/"
                or the password is too long
            ConflictError: If the username is taken
        """
        if not username or not password:
            raise InvalidInputError("Username and password are required")
        # Usernames travel as single path segments in the quota and admin URLs.
        if "/" in username:
            raise InvalidInputError("Username cannot contain '/'")

        if await self.store.account_exists(username):
            raise ConflictError("User already exists")

        try:
            password_hash = await self.password_hasher.hash(password)
        except ValueError as e:
            raise InvalidInputError(str(e)) from e

        # The store re-checks existence atomically; a concurrent registration
        # may have won since the check above.
        if not await self.store.create_account(Account.create(username, password_hash)):
            raise ConflictError("User already exists")

        logger.info("Registered user %s", username)
        return username

    async def authenticate(self, username: str, password: str) -> AccountWithQuota:
        """
        Verify credentials.

        Returns:
            The account with its current quota record (None if never provisioned)

        Raises:
            InvalidInputError: If a field is empty
            UnauthorizedError: If the user is unknown or the password is wrong
        """
        if not username or not password:
            raise InvalidInputError("Username and password are required")

        account = await self.store.get_account(username)
        # Unknown users are checked against a placeholder hash of the same cost.
        password_hash = (
            account.password_hash
            if account is not None
            else await self.password_hasher.dummy_hash()
        )
        verified = await self.password_hasher.verify(password, password_hash)
        if account is None or not verified:
            logger.warning("Failed login attempt for user %s", username)
            raise UnauthorizedError("Invalid username or password")

        quota = await self.store.get_quota(username)
        return AccountWithQuota(account=account, quota=quota)

    async def exists(self, username: str) -> bool:
        return await self.store.account_exists(username)

    async def find(self, username: str) -> Optional[AccountWithQuota]:
        """The account and its quota record, or None if no such account exists."""
        account = await self.store.get_account(username)
        if account is None:
            return None
        return AccountWithQuota(account=account, quota=await self.store.get_quota(username))

    async def list_all(self) -> List[AccountWithQuota]:
        """All accounts, with a default quota view for accounts lacking one."""
        return [
            AccountWithQuota(
                account=item.account,
                quota=item.quota
                or QuotaRecord(
                    username=item.account.username,
                    max_downloads=self.store.default_max_downloads,
                ),
            )
            for item in await self.store.list_accounts()
        ]

    async def delete(self, username: str) -> None:
        """
        Delete an account and its quota record.

        Raises:
            ForbiddenError: If `username` is the reserved admin identity
        """
        if username == self.admin_username:
            raise ForbiddenError("Cannot delete admin user")

        await self.store.delete_account(username)
        logger.info("Deleted user %s", username)

    async def ensure_admin(self, password: str) -> bool:
        """
        Create the reserved admin account if it does not exist yet.

        Returns:
            True if the account was created by this call
        """
        if await self.store.account_exists(self.admin_username):
            return False

        try:
            await self.register(self.admin_username, password)
        except ConflictError:
            return False
        return True

    def __str__(self) -> str:
        return (
            f"AccountStore(store={self.store}, password_hasher={self.password_hasher}, "
            f"admin_username='{self.admin_username}')"
        )
