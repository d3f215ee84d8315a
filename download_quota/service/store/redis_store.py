"""Redis-backed quota store."""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import redis.asyncio as redis

from download_quota.models import (
    Account,
    AccountWithQuota,
    IncrementResult,
    QuotaRecord,
)
from download_quota.service.store.base import QuotaStore

logger = logging.getLogger(__name__)


class RedisQuotaStore(QuotaStore):
    """
    Quota store keeping accounts and quotas as Redis hashes.

    Layout, for a key prefix `p`:
      - `p:account:<username>`: account hash
      - `p:quota:<username>`: quota hash
      - `p:accounts`: set of registered usernames

    Registration and increment run as Lua scripts so that their
    check-then-write steps execute atomically on the server.
    """

    def __init__(
        self,
        redis_client: redis.Redis,
        key_prefix: str = "download-quota",
        default_max_downloads: int = 30,
    ):
        """
        Initialize the store.

        Args:
            redis_client: Async Redis client instance (created with
                `decode_responses=True`)
            key_prefix: Prefix for every key written by the store
            default_max_downloads: Limit given to newly created quota records
        """
        super().__init__(default_max_downloads)
        self.redis_client: redis.Redis = redis_client
        self.key_prefix = key_prefix
        self._lua_scripts: Dict[str, str] = {}

    def _load_lua_script(self, name: str) -> str:
        """Load a Lua script from the resources directory."""
        if name in self._lua_scripts:
            return self._lua_scripts[name]

        script_path = Path(__file__).parent / "resources" / f"{name}.lua"
        with open(script_path, "r") as f:
            self._lua_scripts[name] = f.read()

        return self._lua_scripts[name]

    async def _eval(self, name: str, keys: List[str], args: List[str]) -> Any:
        script_content = self._load_lua_script(name)
        return await self.redis_client.eval(script_content, len(keys), *keys, *args)  # type: ignore

    def _account_key(self, username: str) -> str:
        return f"{self.key_prefix}:account:{username}"

    def _quota_key(self, username: str) -> str:
        return f"{self.key_prefix}:quota:{username}"

    def _index_key(self) -> str:
        return f"{self.key_prefix}:accounts"

    async def connect(self) -> None:
        await self.redis_client.ping()  # type: ignore
        logger.info("Connected to Redis (key prefix '%s')", self.key_prefix)

    async def close(self) -> None:
        await self.redis_client.aclose()
        logger.info("Redis connection closed")

    async def create_account(self, account: Account) -> bool:
        fields = account.to_hash()
        created = await self._eval(
            "register",
            keys=[
                self._account_key(account.username),
                self._quota_key(account.username),
                self._index_key(),
            ],
            args=[
                fields["username"],
                fields["password_hash"],
                fields["created_at"],
                str(self.default_max_downloads),
            ],
        )
        return int(created) == 1

    async def get_account(self, username: str) -> Optional[Account]:
        data = await self.redis_client.hgetall(self._account_key(username))  # type: ignore
        return Account.from_hash(data) if data else None

    async def account_exists(self, username: str) -> bool:
        return bool(await self.redis_client.exists(self._account_key(username)))

    async def delete_account(self, username: str) -> None:
        async with self.redis_client.pipeline(transaction=True) as pipe:
            pipe.delete(self._account_key(username), self._quota_key(username))
            pipe.srem(self._index_key(), username)
            await pipe.execute()

    async def list_accounts(self) -> List[AccountWithQuota]:
        usernames = sorted(await self.redis_client.smembers(self._index_key()))  # type: ignore
        if not usernames:
            return []

        async with self.redis_client.pipeline(transaction=False) as pipe:
            for username in usernames:
                pipe.hgetall(self._account_key(username))
                pipe.hgetall(self._quota_key(username))
            results = await pipe.execute()

        accounts: List[AccountWithQuota] = []
        for username, account_data, quota_data in zip(
            usernames, results[0::2], results[1::2]
        ):
            if not account_data:
                logger.warning("Username '%s' indexed without an account record", username)
                continue
            accounts.append(
                AccountWithQuota(
                    account=Account.from_hash(account_data),
                    quota=QuotaRecord.from_hash(quota_data) if quota_data else None,
                )
            )

        accounts.sort(key=lambda item: (item.account.created_at, item.account.username))
        return accounts

    async def get_quota(self, username: str) -> Optional[QuotaRecord]:
        data = await self.redis_client.hgetall(self._quota_key(username))  # type: ignore
        return QuotaRecord.from_hash(data) if data else None

    async def _upsert_quota(
        self, username: str, overwrite: Dict[str, str]
    ) -> QuotaRecord:
        """Write `overwrite` and fill the remaining fields with defaults if unset."""
        quota_key = self._quota_key(username)
        defaults = QuotaRecord(
            username=username, max_downloads=self.default_max_downloads
        ).to_hash()

        async with self.redis_client.pipeline(transaction=True) as pipe:
            if overwrite:
                pipe.hset(quota_key, mapping=overwrite)
            for field, value in defaults.items():
                if field not in overwrite:
                    pipe.hsetnx(quota_key, field, value)
            pipe.hgetall(quota_key)
            results = await pipe.execute()

        return QuotaRecord.from_hash(results[-1])

    async def get_or_create_quota(self, username: str) -> QuotaRecord:
        return await self._upsert_quota(username, {})

    async def increment_quota(
        self, username: str, provision: bool = False
    ) -> Optional[IncrementResult]:
        try:
            result: list = await self._eval(
                "increment",
                keys=[self._quota_key(username)],
                args=[
                    username,
                    str(self.default_max_downloads),
                    "1" if provision else "0",
                ],
            )
        except redis.ResponseError as e:
            logger.error("Redis increment failed for user %s: %s", username, str(e))
            raise

        status, max_downloads, used_downloads = (int(value) for value in result)
        if status < 0:
            return None

        return IncrementResult(
            allowed=status == 1,
            quota=QuotaRecord(
                username=username,
                max_downloads=max_downloads,
                used_downloads=used_downloads,
            ),
        )

    async def reset_quota(self, username: str) -> QuotaRecord:
        return await self._upsert_quota(username, {"used_downloads": "0"})

    async def set_quota_limit(self, username: str, max_downloads: int) -> QuotaRecord:
        return await self._upsert_quota(username, {"max_downloads": str(max_downloads)})

    def __str__(self) -> str:
        return f"RedisQuotaStore(key_prefix='{self.key_prefix}')"
