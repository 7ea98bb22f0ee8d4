"""Google OAuth 2.0 / OpenID Connect adapter.

Implements OAuthProvider against Google's public endpoints:
- browser flow: consent URL → authorization code → token endpoint → userinfo
- native/SPA flow: ID token checked by the tokeninfo endpoint, audience pinned
  to our client ids
"""

import logging
import os
from urllib.parse import urlencode

import httpx
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from domain.model.errors import ProviderError
from domain.model.oauth import ExternalProfile

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"
GOOGLE_TOKENINFO_URL = "https://oauth2.googleapis.com/tokeninfo"
GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")
API_TIMEOUT_SECONDS = 5.0

# Google serves 96px avatars by default; ask for 400px
_AVATAR_SMALL = "s96-c"
_AVATAR_LARGE = "s400-c"


def upscale_avatar(url: str | None) -> str | None:
    if not url:
        return None
    return url.replace(_AVATAR_SMALL, _AVATAR_LARGE)


class GoogleOAuthAdapter:
    """Adapter that verifies Google identities over HTTPS."""

    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        callback_url: str | None = None,
        extra_audiences: list[str] | None = None,
        timeout: float = API_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.client_id = client_id or os.getenv("GOOGLE_CLIENT_ID", "")
        self.client_secret = client_secret or os.getenv("GOOGLE_CLIENT_SECRET", "")
        self.callback_url = callback_url or os.getenv("GOOGLE_CALLBACK_URL", "")
        if extra_audiences is None:
            raw = os.getenv("GOOGLE_MOBILE_CLIENT_IDS", "")
            extra_audiences = [a.strip() for a in raw.split(",") if a.strip()]
        self.audiences = {self.client_id, *extra_audiences} - {""}
        self.timeout = timeout
        self.transport = transport

    def authorization_url(self, state: str) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.callback_url,
            "response_type": "code",
            "scope": "openid email profile",
            "state": state,
            "prompt": "select_account",
        }
        return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> ExternalProfile:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                token_response = await _post_with_retry(client, GOOGLE_TOKEN_URL, {
                    "code": code,
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "redirect_uri": self.callback_url,
                    "grant_type": "authorization_code",
                })
                token_response.raise_for_status()
                access_token = token_response.json().get("access_token")
                if not access_token:
                    raise ProviderError("Google did not return an access token")

                userinfo_response = await _get_with_retry(
                    client,
                    GOOGLE_USERINFO_URL,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
                userinfo_response.raise_for_status()
                return _profile_from_claims(userinfo_response.json())

        except httpx.HTTPStatusError as e:
            logger.warning(
                "Google code exchange HTTP error",
                extra={"status_code": e.response.status_code},
            )
            raise ProviderError() from e
        except httpx.RequestError as e:
            logger.warning(
                "Google code exchange request error",
                extra={"error_type": type(e).__name__},
            )
            raise ProviderError() from e

    async def verify_id_token(self, id_token: str) -> ExternalProfile:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await _get_with_retry(
                    client, GOOGLE_TOKENINFO_URL, params={"id_token": id_token},
                )
                # tokeninfo answers 400 for forged, expired or malformed tokens
                response.raise_for_status()
                claims = response.json()
        except httpx.HTTPStatusError as e:
            logger.info(
                "Google rejected ID token",
                extra={"status_code": e.response.status_code},
            )
            raise ProviderError("Invalid Google ID token") from e
        except httpx.RequestError as e:
            logger.warning(
                "Google tokeninfo request error",
                extra={"error_type": type(e).__name__},
            )
            raise ProviderError() from e

        if claims.get("aud") not in self.audiences:
            logger.warning("Google ID token audience mismatch", extra={"aud": claims.get("aud")})
            raise ProviderError("Invalid Google ID token")
        if claims.get("iss") not in GOOGLE_ISSUERS:
            raise ProviderError("Invalid Google ID token")

        return _profile_from_claims(claims)


# ── HTTP helpers ─────────────────────────────────────────────


@retry(
    retry=retry_if_exception_type((httpx.TimeoutException, httpx.ConnectError)),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=4),
    reraise=True,
)
async def _get_with_retry(
    client: httpx.AsyncClient,
    url: str,
    params: dict | None = None,
    headers: dict | None = None,
) -> httpx.Response:
    return await client.get(url, params=params, headers=headers)


@retry(
    retry=retry_if_exception_type((httpx.TimeoutException, httpx.ConnectError)),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=4),
    reraise=True,
)
async def _post_with_retry(client: httpx.AsyncClient, url: str, data: dict) -> httpx.Response:
    return await client.post(url, data=data)


def _profile_from_claims(claims: dict) -> ExternalProfile:
    """Build a profile from OIDC claims (userinfo or tokeninfo shape)."""
    subject = claims.get("sub")
    email = claims.get("email")
    if not subject or not email:
        raise ProviderError("Google profile is missing an id or email")

    # tokeninfo returns booleans as strings
    verified = claims.get("email_verified", True)
    if isinstance(verified, str):
        verified = verified.lower() == "true"

    return ExternalProfile(
        provider_id=str(subject),
        email=email,
        name=claims.get("name") or email.split("@")[0],
        avatar_url=upscale_avatar(claims.get("picture")),
        email_verified=bool(verified),
    )
