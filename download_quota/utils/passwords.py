import logging
import secrets

import bcrypt
from starlette.concurrency import run_in_threadpool

logger = logging.getLogger(__name__)

# bcrypt only considers the first 72 bytes of its input.
MAX_PASSWORD_BYTES = 72


class PasswordHasher:
    """
    Salted bcrypt hashing for account passwords.

    Hashing runs in the thread pool so that it does not block the event loop.
    """

    def __init__(self, rounds: int = 12):
        """
        Args:
            rounds: bcrypt cost factor (4 to 31). Lower values are only
                meant for tests.
        """
        self.rounds = rounds
        self._dummy_hash: str | None = None

    async def hash(self, password: str) -> str:
        """
        Hash a password with a fresh salt.

        Raises:
            ValueError: If the password is empty or longer than 72 bytes
        """
        encoded = password.encode("utf-8")
        if not encoded:
            raise ValueError("Password cannot be empty")
        if len(encoded) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password cannot exceed {MAX_PASSWORD_BYTES} bytes")

        salt = bcrypt.gensalt(rounds=self.rounds)
        password_hash = await run_in_threadpool(bcrypt.hashpw, encoded, salt)
        return password_hash.decode("utf-8")

    async def dummy_hash(self) -> str:
        """A hash of a throwaway password, computed once, for checks on unknown users."""
        if self._dummy_hash is None:
            self._dummy_hash = await self.hash(secrets.token_urlsafe(16))
        return self._dummy_hash

    async def verify(self, password: str, password_hash: str) -> bool:
        """Check a password against a stored hash."""
        encoded = password.encode("utf-8")
        if not encoded or len(encoded) > MAX_PASSWORD_BYTES or not password_hash:
            return False

        try:
            return await run_in_threadpool(
                bcrypt.checkpw, encoded, password_hash.encode("utf-8")
            )
        except ValueError as e:
            logger.warning("Stored password hash could not be checked: %s", str(e))
            return False

    def __str__(self) -> str:
        return f"PasswordHasher(rounds={self.rounds})"
