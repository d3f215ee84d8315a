"""Base class for quota store implementations."""

from abc import ABC, abstractmethod
from typing import List, Optional

from download_quota.models import (
    Account,
    AccountWithQuota,
    IncrementResult,
    QuotaRecord,
)


class QuotaStore(ABC):
    """
    Abstract base class for the durable store behind accounts and quotas.

    Implementations keep one account record and at most one quota record per
    username. Every mutation listed here must be atomic with respect to
    concurrent calls for the same username.
    """

    def __init__(self, default_max_downloads: int):
        self.default_max_downloads = default_max_downloads

    async def connect(self) -> None:
        """Open and verify the connection to the backend."""

    async def close(self) -> None:
        """Release the connection to the backend."""

    @abstractmethod
    async def create_account(self, account: Account) -> bool:
        """
        Create an account together with a default quota record.

        An already existing quota record for the username is kept as is.

        Returns:
            False if an account with that username already exists, in which
            case nothing is written.
        """

    @abstractmethod
    async def get_account(self, username: str) -> Optional[Account]: ...

    @abstractmethod
    async def account_exists(self, username: str) -> bool: ...

    @abstractmethod
    async def delete_account(self, username: str) -> None:
        """Delete the account and its quota record. Missing records are ignored."""

    @abstractmethod
    async def list_accounts(self) -> List[AccountWithQuota]: ...

    @abstractmethod
    async def get_quota(self, username: str) -> Optional[QuotaRecord]: ...

    @abstractmethod
    async def get_or_create_quota(self, username: str) -> QuotaRecord: ...

    @abstractmethod
    async def increment_quota(
        self, username: str, provision: bool = False
    ) -> Optional[IncrementResult]:
        """
        Consume one download if the user has any left.

        The check `used_downloads < max_downloads` and the increment happen
        in a single atomic step.

        Args:
            username: Owner of the quota record
            provision: Create a default record first when none exists

        Returns:
            The outcome with the resulting record, or None when the record
            does not exist and `provision` is False.
        """

    @abstractmethod
    async def reset_quota(self, username: str) -> QuotaRecord:
        """Set `used_downloads` to 0, creating the record if needed."""

    @abstractmethod
    async def set_quota_limit(self, username: str, max_downloads: int) -> QuotaRecord:
        """Set `max_downloads`, creating the record if needed."""
