"""Auth service: registration, login, password rotation and reset, Google sign-in.

Pure business logic with no HTTP dependencies.
Raises domain errors that the API layer maps to HTTP status codes.
bcrypt work is pushed to a worker thread so the event loop keeps serving
other requests while a hash is computed.
"""

import asyncio
import logging
from dataclasses import dataclass
from functools import lru_cache

from domain.model.errors import (
    DuplicateEmailError,
    EmailDeliveryError,
    InvalidCredentialsError,
    MissingIdTokenError,
    NoSuchUserError,
    UnauthenticatedError,
)
from domain.model.user import User, normalize_email
from port.mailer import Mailer
from port.oauth_provider import OAuthProvider
from port.user_repository import UserRepository
from services import oauth_bridge, reset_token_service
from services.password_hasher import hash_password, validate_password_strength, verify_password
from services.token_issuer import TokenIssuer

logger = logging.getLogger(__name__)


@dataclass
class AuthSession:
    """A freshly issued session token and the account it belongs to."""
    token: str
    user: User


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    return hash_password("timing-equalizer-Pa55")


async def _check_password(plain: str, hashed: str | None) -> bool:
    # Unknown accounts still pay for one bcrypt round
    return await asyncio.to_thread(verify_password, plain, hashed or _dummy_hash())


def _open_session(tokens: TokenIssuer, user: User) -> AuthSession:
    return AuthSession(token=tokens.issue(user.id), user=user)


# References to fire-and-forget sends, held until they finish
_background_tasks: set[asyncio.Task] = set()


async def _send_welcome(mailer: Mailer, user: User) -> None:
    try:
        await mailer.send_welcome(user.email, user.name)
    except Exception as e:
        logger.warning(
            "Welcome email failed; registration kept",
            extra={"userId": user.id, "error": str(e)[:200]},
        )


async def wait_for_background_tasks() -> None:
    """Wait for pending background sends, e.g. on shutdown."""
    loop = asyncio.get_running_loop()
    pending = [task for task in _background_tasks if task.get_loop() is loop]
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)


async def register(
    repo: UserRepository,
    tokens: TokenIssuer,
    mailer: Mailer,
    name: str,
    email: str,
    password: str,
) -> AuthSession:
    """Create a local account and open a session.

    The welcome email is sent in the background: registration does not wait
    for it, and a delivery failure is only logged.

    Raises:
        DuplicateEmailError: email already registered
        WeakPasswordError: password does not meet strength requirements
    """
    email = normalize_email(email)
    if repo.get_by_email(email):
        raise DuplicateEmailError()

    validate_password_strength(password)
    password_hash = await asyncio.to_thread(hash_password, password)

    user = repo.create(email=email, name=name.strip(), password_hash=password_hash)
    if user is None:
        # Unique index rejected a concurrent registration of the same email
        raise DuplicateEmailError()

    task = asyncio.create_task(_send_welcome(mailer, user))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)

    logger.info("User registered", extra={"userId": user.id, "email": email})
    return _open_session(tokens, user)


async def login(repo: UserRepository, tokens: TokenIssuer, email: str, password: str) -> AuthSession:
    """Authenticate by email and password.

    Raises:
        InvalidCredentialsError: unknown email, wrong password, or an account
            without a password (deliberately indistinguishable)
    """
    user = repo.get_by_email(normalize_email(email))
    password_ok = await _check_password(password, user.password_hash if user else None)
    if user is None or user.password_hash is None or not password_ok:
        raise InvalidCredentialsError()

    # Login succeeds even if the bookkeeping write fails
    repo.update_last_login(user.id)
    logger.info("User logged in", extra={"userId": user.id})
    return _open_session(tokens, user)


async def change_password(
    repo: UserRepository,
    tokens: TokenIssuer,
    user_id: str,
    current_password: str,
    new_password: str,
) -> AuthSession:
    """Rotate the password and issue a new token.

    Tokens issued before the change stay valid until they expire.

    Raises:
        InvalidCredentialsError: current password does not verify
        WeakPasswordError: new password does not meet strength requirements
    """
    user = repo.get_by_id(user_id)
    if user is None:
        raise UnauthenticatedError()

    if not await asyncio.to_thread(verify_password, current_password, user.password_hash):
        raise InvalidCredentialsError("Password is incorrect")

    validate_password_strength(new_password)
    password_hash = await asyncio.to_thread(hash_password, new_password)

    updated = repo.set_password(user.id, password_hash)
    if updated is None:
        raise UnauthenticatedError()

    logger.info("Password changed", extra={"userId": user.id})
    return _open_session(tokens, updated)


async def request_password_reset(
    repo: UserRepository,
    mailer: Mailer,
    email: str,
    reset_url_base: str,
) -> str:
    """Open a reset window and email the link. Returns the raw secret.

    If the email cannot be delivered the pending reset is rolled back so
    the account is not left with a reset the user can never complete.

    Raises:
        NoSuchUserError: no account for this email
        EmailDeliveryError: the reset email could not be sent
    """
    user = repo.get_by_email(normalize_email(email))
    if user is None:
        raise NoSuchUserError()

    raw = reset_token_service.request_reset(repo, user)
    reset_url = f"{reset_url_base.rstrip('/')}/{raw}"

    try:
        await mailer.send_password_reset(user.email, reset_url)
    except Exception as e:
        reset_token_service.rollback_reset(repo, user)
        logger.error(
            "Password reset email failed; pending reset rolled back",
            extra={"userId": user.id, "error": str(e)[:200]},
        )
        if isinstance(e, EmailDeliveryError):
            raise
        raise EmailDeliveryError() from e

    logger.info("Password reset requested", extra={"userId": user.id})
    return raw


async def complete_password_reset(
    repo: UserRepository,
    tokens: TokenIssuer,
    raw_secret: str,
    new_password: str,
) -> AuthSession:
    """Consume a reset secret, set the new password and open a session.

    Raises:
        WeakPasswordError: new password does not meet strength requirements
        InvalidOrExpiredTokenError: secret unknown, already used or expired
    """
    validate_password_strength(new_password)
    password_hash = await asyncio.to_thread(hash_password, new_password)

    user = reset_token_service.consume_reset(repo, raw_secret, password_hash)
    logger.info("Password reset completed", extra={"userId": user.id})
    return _open_session(tokens, user)


async def login_with_google_code(
    repo: UserRepository,
    tokens: TokenIssuer,
    provider: OAuthProvider,
    code: str,
) -> AuthSession:
    """Browser redirect flow: authorization code → profile → local account.

    Raises:
        ProviderError: code rejected or provider unreachable
    """
    profile = await provider.exchange_code(code)
    user = oauth_bridge.resolve(repo, profile)
    return _open_session(tokens, user)


async def login_with_google_id_token(
    repo: UserRepository,
    tokens: TokenIssuer,
    provider: OAuthProvider,
    id_token: str | None,
) -> AuthSession:
    """Native/SPA flow: verified ID token → local account.

    Raises:
        MissingIdTokenError: no token supplied
        ProviderError: token rejected or provider unreachable
    """
    if not id_token:
        raise MissingIdTokenError()
    profile = await provider.verify_id_token(id_token)
    user = oauth_bridge.resolve(repo, profile)
    return _open_session(tokens, user)
