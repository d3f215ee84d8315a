"""In-process quota store for development and tests."""

import asyncio
from typing import Dict, List, Optional

from download_quota.models import (
    Account,
    AccountWithQuota,
    IncrementResult,
    QuotaRecord,
)
from download_quota.service.store.base import QuotaStore


class InMemoryQuotaStore(QuotaStore):
    """
    Quota store implementation holding records in dictionaries.

    Records are kept as string maps, the same shape the Redis store uses.
    All mutations run under a single lock. Data is lost when the process exits.
    """

    def __init__(self, default_max_downloads: int = 30):
        super().__init__(default_max_downloads)
        self._accounts: Dict[str, Dict[str, str]] = {}
        self._quotas: Dict[str, Dict[str, str]] = {}
        self._lock = asyncio.Lock()

    def _default_quota(self, username: str) -> Dict[str, str]:
        return QuotaRecord(
            username=username, max_downloads=self.default_max_downloads
        ).to_hash()

    async def create_account(self, account: Account) -> bool:
        async with self._lock:
            if account.username in self._accounts:
                return False
            self._accounts[account.username] = account.to_hash()
            self._quotas.setdefault(
                account.username, self._default_quota(account.username)
            )
            return True

    async def get_account(self, username: str) -> Optional[Account]:
        data = self._accounts.get(username)
        return Account.from_hash(data) if data else None

    async def account_exists(self, username: str) -> bool:
        return username in self._accounts

    async def delete_account(self, username: str) -> None:
        async with self._lock:
            self._accounts.pop(username, None)
            self._quotas.pop(username, None)

    async def list_accounts(self) -> List[AccountWithQuota]:
        accounts = [
            AccountWithQuota(
                account=Account.from_hash(data),
                quota=(
                    QuotaRecord.from_hash(self._quotas[username])
                    if username in self._quotas
                    else None
                ),
            )
            for username, data in self._accounts.items()
        ]
        accounts.sort(key=lambda item: (item.account.created_at, item.account.username))
        return accounts

    async def get_quota(self, username: str) -> Optional[QuotaRecord]:
        data = self._quotas.get(username)
        return QuotaRecord.from_hash(data) if data else None

    async def get_or_create_quota(self, username: str) -> QuotaRecord:
        async with self._lock:
            data = self._quotas.setdefault(username, self._default_quota(username))
            return QuotaRecord.from_hash(data)

    async def increment_quota(
        self, username: str, provision: bool = False
    ) -> Optional[IncrementResult]:
        async with self._lock:
            data = self._quotas.get(username)
            if data is None:
                if not provision:
                    return None
                data = self._quotas[username] = self._default_quota(username)

            quota = QuotaRecord.from_hash(data)
            if quota.used_downloads >= quota.max_downloads:
                return IncrementResult(allowed=False, quota=quota)

            data["used_downloads"] = str(quota.used_downloads + 1)
            return IncrementResult(allowed=True, quota=QuotaRecord.from_hash(data))

    async def reset_quota(self, username: str) -> QuotaRecord:
        async with self._lock:
            data = self._quotas.setdefault(username, self._default_quota(username))
            data["used_downloads"] = "0"
            return QuotaRecord.from_hash(data)

    async def set_quota_limit(self, username: str, max_downloads: int) -> QuotaRecord:
        async with self._lock:
            data = self._quotas.setdefault(username, self._default_quota(username))
            data["max_downloads"] = str(max_downloads)
            return QuotaRecord.from_hash(data)

    def __str__(self) -> str:
        return "InMemoryQuotaStore()"
