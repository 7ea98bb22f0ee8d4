"""OAuth bridge: maps a verified third-party identity onto a local account.

Lookup precedence:
    1. stored external id
    2. email  (links the external id onto the existing account)
    3. create a new provider account

Every successful resolve writes: the avatar always follows the provider's
latest picture, and the email is marked verified.
"""

import logging

from domain.model.errors import ProviderError
from domain.model.oauth import ExternalProfile
from domain.model.user import AuthProvider, User, normalize_email
from port.user_repository import UserRepository

logger = logging.getLogger(__name__)


def resolve(repo: UserRepository, profile: ExternalProfile) -> User:
    """Find-or-create the local user for an external profile.

    Raises:
        ProviderError: profile unusable or the record could not be written
    """
    if not profile.provider_id or not profile.email:
        raise ProviderError("Provider profile is missing an id or email")

    email = normalize_email(profile.email)

    user = repo.get_by_google_id(profile.provider_id)
    if user:
        return _refresh(repo, user, profile)

    user = repo.get_by_email(email)
    if user:
        return _link(repo, user, profile)

    created = repo.create(
        email=email,
        name=profile.name,
        provider=AuthProvider.GOOGLE.value,
        google_id=profile.provider_id,
        avatar=profile.avatar_url,
        is_email_verified=True,
    )
    if created:
        logger.info("Created user from Google profile", extra={"userId": created.id, "email": email})
        return created

    # Lost a race with a concurrent request for the same identity
    user = repo.get_by_google_id(profile.provider_id)
    if user:
        return _refresh(repo, user, profile)
    user = repo.get_by_email(email)
    if user:
        return _link(repo, user, profile)
    raise ProviderError("Could not create account for provider profile")


def _link(repo: UserRepository, user: User, profile: ExternalProfile) -> User:
    if user.google_id and user.google_id != profile.provider_id:
        logger.warning(
            "Email already linked to a different Google account",
            extra={"userId": user.id},
        )
        raise ProviderError("This email is linked to a different Google account")
    if not profile.email_verified:
        # Unverified provider emails never link onto an existing account
        raise ProviderError("Google account email is not verified")

    linked = _refresh(repo, user, profile)
    if user.google_id is None:
        logger.info("Linked Google account to existing user", extra={"userId": user.id})
    return linked


def _refresh(repo: UserRepository, user: User, profile: ExternalProfile) -> User:
    updated = repo.update_google_identity(
        user.id,
        google_id=profile.provider_id,
        avatar=profile.avatar_url,
        is_email_verified=True,
    )
    if updated is None:
        raise ProviderError("Could not update account for provider profile")
    return updated
