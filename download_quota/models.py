"""
Account and quota records, and their JSON views.

Both store backends keep records as flat string maps (the shape of a Redis
hash); `from_hash` / `to_hash` convert between those maps and the dataclasses.
"""

from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from dacite import Config, from_dict

DEFAULT_MAX_DOWNLOADS = 30

_HASH_CONFIG = Config(
    type_hooks={
        int: int,
        datetime: datetime.fromisoformat,
    }
)


@dataclass(frozen=True)
class Account:
    username: str
    password_hash: str
    created_at: datetime

    @classmethod
    def create(cls, username: str, password_hash: str) -> "Account":
        return cls(
            username=username,
            password_hash=password_hash,
            created_at=datetime.now(timezone.utc),
        )

    @classmethod
    def from_hash(cls, data: Dict[str, str]) -> "Account":
        return from_dict(data_class=cls, data=data, config=_HASH_CONFIG)

    def to_hash(self) -> Dict[str, str]:
        return {
            "username": self.username,
            "password_hash": self.password_hash,
            "created_at": self.created_at.isoformat(),
        }

    def to_public_dict(self) -> Dict[str, Any]:
        """Account fields safe to return to clients (no password hash)."""
        return {
            "username": self.username,
            "createdAt": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class QuotaRecord:
    """
    Download allowance and consumption counter for a single user.

    `used_downloads` is never clamped when the limit is lowered below it;
    only the derived `remaining` is.
    """

    username: str
    max_downloads: int = DEFAULT_MAX_DOWNLOADS
    used_downloads: int = 0

    @property
    def remaining(self) -> int:
        return max(0, self.max_downloads - self.used_downloads)

    @property
    def is_blocked(self) -> bool:
        return self.remaining <= 0

    @classmethod
    def from_hash(cls, data: Dict[str, str]) -> "QuotaRecord":
        return from_dict(data_class=cls, data=data, config=_HASH_CONFIG)

    def to_hash(self) -> Dict[str, str]:
        return {key: str(value) for key, value in asdict(self).items()}

    def to_view(self) -> Dict[str, Any]:
        """The quota view returned by every quota endpoint."""
        return {
            "user": self.username,
            "maxDownloads": self.max_downloads,
            "usedDownloads": self.used_downloads,
            "remaining": self.remaining,
            "isBlocked": self.is_blocked,
        }


@dataclass(frozen=True)
class IncrementResult:
    allowed: bool
    quota: QuotaRecord


@dataclass(frozen=True)
class AccountWithQuota:
    account: Account
    quota: Optional[QuotaRecord]
