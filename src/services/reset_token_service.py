"""Password-reset token lifecycle.

States of a user record:

    NoPendingReset --request_reset--> PendingReset
    PendingReset --consume_reset--> NoPendingReset   (password rotated)
    PendingReset --rollback_reset--> NoPendingReset  (delivery failed)
    PendingReset --window elapses--> treated as NoPendingReset

Only sha256(secret) and an absolute expiry are persisted. The raw secret
leaves this module exactly once, as the return value of request_reset().
"""

import hashlib
import os
import secrets
from datetime import datetime, timedelta, timezone

from domain.model.errors import InvalidOrExpiredTokenError, NoSuchUserError
from domain.model.user import User
from port.user_repository import UserRepository

RESET_TOKEN_EXPIRE_MINUTES = int(os.getenv("RESET_TOKEN_EXPIRE_MINUTES", 10))
RESET_TOKEN_BYTES = 20


def hash_reset_secret(raw: str) -> str:
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def generate_reset_secret() -> tuple[str, str]:
    """Return (raw secret, stored hash)."""
    raw = secrets.token_hex(RESET_TOKEN_BYTES)
    return raw, hash_reset_secret(raw)


def request_reset(repo: UserRepository, user: User, now: datetime | None = None) -> str:
    """Open a reset window for the user and return the raw secret for delivery."""
    now = now or datetime.now(timezone.utc)
    raw, hashed = generate_reset_secret()
    expires_at = now + timedelta(minutes=RESET_TOKEN_EXPIRE_MINUTES)
    if not repo.set_reset_token(user.id, hashed, expires_at):
        raise NoSuchUserError()
    return raw


def rollback_reset(repo: UserRepository, user: User) -> None:
    """Drop a pending reset whose secret never reached the user."""
    repo.clear_reset_token(user.id)


def consume_reset(
    repo: UserRepository,
    raw: str,
    password_hash: str,
    now: datetime | None = None,
) -> User:
    """Apply a new password hash if the secret matches an open window.

    Raises:
        InvalidOrExpiredTokenError: unknown, already used, or expired secret
    """
    now = now or datetime.now(timezone.utc)
    if not raw:
        raise InvalidOrExpiredTokenError()

    user = repo.consume_reset_token(hash_reset_secret(raw), now, password_hash)
    if user is None:
        raise InvalidOrExpiredTokenError()
    return user
