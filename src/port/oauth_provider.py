"""OAuth provider port: outbound interface to a third-party identity provider."""

from typing import Protocol

from domain.model.oauth import ExternalProfile


class OAuthProvider(Protocol):
    """Port for verifying third-party identity assertions.

    Both async methods return a verified ExternalProfile or raise ProviderError.
    """

    def authorization_url(self, state: str) -> str:
        """Consent-screen URL the browser is redirected to."""
        ...

    async def exchange_code(self, code: str) -> ExternalProfile:
        """Exchange an authorization code from the browser redirect for a profile."""
        ...

    async def verify_id_token(self, id_token: str) -> ExternalProfile:
        """Verify an ID token minted for this client (native/SPA sign-in)."""
        ...
