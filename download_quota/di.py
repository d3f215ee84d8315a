import redis.asyncio as redis
from dependency_injector import containers, providers

from download_quota.service.accounts import AccountStore
from download_quota.service.ledger import QuotaLedger
from download_quota.service.store.memory_store import InMemoryQuotaStore
from download_quota.service.store.redis_store import RedisQuotaStore
from download_quota.utils.passwords import PasswordHasher


class AppConfiguration(providers.Configuration):
    def store_backend(self) -> str:
        """Name of the configured store backend, lowercased."""
        return str(self.store.backend() or "redis").strip().lower()

    def admin_password(self) -> str | None:
        """Password used to seed the admin account, if any."""
        password = self.auth.admin_password()
        return password if isinstance(password, str) and password else None


class Container(containers.DeclarativeContainer):
    """Dependency Injection Container for the download quota service."""

    config = AppConfiguration()

    redis_client: providers.Singleton = providers.Singleton(
        redis.from_url,
        config.store.redis_url,
        decode_responses=True,
    )

    store: providers.Selector = providers.Selector(
        config.store_backend,
        redis=providers.Singleton(
            RedisQuotaStore,
            redis_client=redis_client,
            key_prefix=config.store.key_prefix,
            default_max_downloads=config.quota.default_max_downloads.as_int(),
        ),
        memory=providers.Singleton(
            InMemoryQuotaStore,
            default_max_downloads=config.quota.default_max_downloads.as_int(),
        ),
    )

    password_hasher: providers.Singleton = providers.Singleton(
        PasswordHasher,
        rounds=config.auth.bcrypt_rounds.as_int(),
    )

    accounts: providers.Singleton = providers.Singleton(
        AccountStore,
        store=store,
        password_hasher=password_hasher,
        admin_username=config.auth.admin_username,
    )

    ledger: providers.Singleton = providers.Singleton(
        QuotaLedger,
        store=store,
        mode=config.quota.mode.as_(lambda mode: str(mode).strip().lower()),
    )
