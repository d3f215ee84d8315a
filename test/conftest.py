"""Shared fixtures for the download quota tests."""

import pytest

from download_quota.service.accounts import AccountStore
from download_quota.service.ledger import QuotaLedger
from download_quota.service.store.memory_store import InMemoryQuotaStore
from download_quota.utils.passwords import PasswordHasher

# Lowest cost bcrypt accepts, to keep the tests fast.
TEST_BCRYPT_ROUNDS = 4


@pytest.fixture
def store() -> InMemoryQuotaStore:
    return InMemoryQuotaStore(default_max_downloads=30)


@pytest.fixture
def accounts(store: InMemoryQuotaStore) -> AccountStore:
    return AccountStore(store, PasswordHasher(rounds=TEST_BCRYPT_ROUNDS))


@pytest.fixture
def ledger(store: InMemoryQuotaStore) -> QuotaLedger:
    return QuotaLedger(store, mode="strict")


@pytest.fixture
def permissive_ledger(store: InMemoryQuotaStore) -> QuotaLedger:
    return QuotaLedger(store, mode="permissive")
