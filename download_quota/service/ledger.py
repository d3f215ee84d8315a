"""Quota ledger: remaining downloads, consumption, resets and limits."""

import logging
from typing import Any, Literal, NoReturn

from download_quota.errors import (
    InvalidInputError,
    QuotaNotFoundError,
    UserNotFoundError,
)
from download_quota.models import IncrementResult, QuotaRecord
from download_quota.service.store.base import QuotaStore

logger = logging.getLogger(__name__)

QuotaMode = Literal["strict", "permissive"]


class QuotaLedger:
    """
    Reads and mutates per-user quota records.

    In "strict" mode lookups and increments require a provisioned record and
    resets and limit changes require an existing account. In "permissive"
    mode missing records are created with defaults on first use.
    """

    def __init__(self, store: QuotaStore, mode: QuotaMode = "strict"):
        """
        Args:
            store: Backend holding accounts and quotas
            mode: "strict" or "permissive"
        """
        if mode not in ("strict", "permissive"):
            raise ValueError(f"Unknown quota mode: {mode}")
        self.store = store
        self.mode = mode

    @property
    def strict(self) -> bool:
        return self.mode == "strict"

    async def _raise_missing(self, username: str) -> NoReturn:
        """Raise the not-found error matching why a quota record is missing."""
        if not await self.store.account_exists(username):
            raise UserNotFoundError("User not found")
        raise QuotaNotFoundError("Quota not initialized for user")

    async def _require_account(self, username: str) -> None:
        if self.strict and not await self.store.account_exists(username):
            raise UserNotFoundError("User not found")

    async def get_quota(self, username: str) -> QuotaRecord:
        if not self.strict:
            return await self.store.get_or_create_quota(username)

        quota = await self.store.get_quota(username)
        if quota is None:
            await self._raise_missing(username)
        return quota

    async def increment(self, username: str) -> IncrementResult:
        """
        Consume one download if any remain.

        Raises:
            UserNotFoundError, QuotaNotFoundError: In strict mode, when the
                record does not exist
        """
        result = await self.store.increment_quota(username, provision=not self.strict)
        if result is None:
            await self._raise_missing(username)

        if result.allowed:
            logger.debug(
                "Counted download for %s (%d/%d)",
                username,
                result.quota.used_downloads,
                result.quota.max_downloads,
            )
        else:
            logger.info("Download limit reached for %s", username)
        return result

    async def reset(self, username: str) -> QuotaRecord:
        await self._require_account(username)
        quota = await self.store.reset_quota(username)
        logger.info("Reset quota for %s", username)
        return quota

    async def set_limit(self, username: str, max_downloads: Any) -> QuotaRecord:
        """
        Change the download limit of a user.

        Raises:
            InvalidInputError: If `max_downloads` is not an integer >= 1
            UserNotFoundError: In strict mode, when the account does not exist
        """
        limit = parse_limit(max_downloads)
        await self._require_account(username)
        quota = await self.store.set_quota_limit(username, limit)
        logger.info("Set download limit of %s to %d", username, limit)
        return quota

    def __str__(self) -> str:
        return f"QuotaLedger(store={self.store}, mode='{self.mode}')"


def parse_limit(value: Any) -> int:
    """Validate a download limit coming from a JSON body."""
    if isinstance(value, bool) or value is None:
        raise InvalidInputError("maxDownloads must be >= 1")
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError as e:
            raise InvalidInputError("maxDownloads must be >= 1") from e
    if not isinstance(value, int) or value < 1:
        raise InvalidInputError("maxDownloads must be >= 1")
    return value
