"""In-memory implementation of OAuthProvider for testing."""

from urllib.parse import urlencode

from domain.model.errors import ProviderError
from domain.model.oauth import ExternalProfile


class FakeOAuthProvider:
    """Maps preconfigured codes / ID tokens to profiles; anything else is rejected."""

    def __init__(
        self,
        codes: dict[str, ExternalProfile] | None = None,
        id_tokens: dict[str, ExternalProfile] | None = None,
    ):
        self.codes = codes or {}
        self.id_tokens = id_tokens or {}
        self.last_state: str | None = None

    def authorization_url(self, state: str) -> str:
        self.last_state = state
        return "https://accounts.example.test/auth?" + urlencode({"state": state})

    async def exchange_code(self, code: str) -> ExternalProfile:
        profile = self.codes.get(code)
        if profile is None:
            raise ProviderError("Authorization code rejected")
        return profile

    async def verify_id_token(self, id_token: str) -> ExternalProfile:
        profile = self.id_tokens.get(id_token)
        if profile is None:
            raise ProviderError("ID token rejected")
        return profile
