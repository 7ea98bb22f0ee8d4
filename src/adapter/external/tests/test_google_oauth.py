"""Tests for GoogleOAuthAdapter against a mocked HTTP transport."""

import unittest
from urllib.parse import parse_qs, urlparse

import httpx

from adapter.external.google_oauth import (
    GOOGLE_TOKEN_URL,
    GoogleOAuthAdapter,
    upscale_avatar,
)
from domain.model.errors import ProviderError

CLIENT_ID = "web-client.apps.googleusercontent.com"
MOBILE_ID = "ios-client.apps.googleusercontent.com"

TOKENINFO_CLAIMS = {
    "iss": "https://accounts.google.com",
    "aud": CLIENT_ID,
    "sub": "1122334455",
    "email": "carol@example.com",
    "email_verified": "true",
    "name": "Carol",
    "picture": "https://lh3.googleusercontent.com/a/photo=s96-c",
}


def _adapter(handler) -> GoogleOAuthAdapter:
    return GoogleOAuthAdapter(
        client_id=CLIENT_ID,
        client_secret="shh",
        callback_url="https://api.example/api/auth/google/callback",
        extra_audiences=[MOBILE_ID],
        transport=httpx.MockTransport(handler),
    )


class TestAuthorizationUrl(unittest.TestCase):

    def test_url_carries_client_state_and_scopes(self):
        adapter = _adapter(lambda request: httpx.Response(500))

        url = urlparse(adapter.authorization_url("signed-state"))
        query = parse_qs(url.query)

        self.assertEqual(url.netloc, "accounts.google.com")
        self.assertEqual(query["client_id"], [CLIENT_ID])
        self.assertEqual(query["state"], ["signed-state"])
        self.assertEqual(query["redirect_uri"], ["https://api.example/api/auth/google/callback"])
        self.assertIn("email", query["scope"][0])

    def test_upscale_avatar(self):
        self.assertEqual(upscale_avatar("https://x/p=s96-c"), "https://x/p=s400-c")
        self.assertIsNone(upscale_avatar(None))


class TestVerifyIdToken(unittest.IsolatedAsyncioTestCase):

    async def test_valid_token_returns_profile(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["id_token"] = request.url.params.get("id_token")
            return httpx.Response(200, json=TOKENINFO_CLAIMS)

        profile = await _adapter(handler).verify_id_token("the-token")

        self.assertEqual(seen["id_token"], "the-token")
        self.assertEqual(profile.provider_id, "1122334455")
        self.assertEqual(profile.email, "carol@example.com")
        self.assertTrue(profile.email_verified)
        self.assertTrue(profile.avatar_url.endswith("s400-c"))

    async def test_mobile_audience_accepted(self):
        claims = {**TOKENINFO_CLAIMS, "aud": MOBILE_ID}
        profile = await _adapter(lambda r: httpx.Response(200, json=claims)).verify_id_token("t")
        self.assertEqual(profile.name, "Carol")

    async def test_foreign_audience_rejected(self):
        claims = {**TOKENINFO_CLAIMS, "aud": "someone-else"}
        with self.assertRaises(ProviderError):
            await _adapter(lambda r: httpx.Response(200, json=claims)).verify_id_token("t")

    async def test_foreign_issuer_rejected(self):
        claims = {**TOKENINFO_CLAIMS, "iss": "https://evil.example"}
        with self.assertRaises(ProviderError):
            await _adapter(lambda r: httpx.Response(200, json=claims)).verify_id_token("t")

    async def test_google_rejection_becomes_provider_error(self):
        handler = lambda r: httpx.Response(400, json={"error": "invalid_token"})
        with self.assertRaises(ProviderError):
            await _adapter(handler).verify_id_token("forged")

    async def test_unverified_email_flag_parsed(self):
        claims = {**TOKENINFO_CLAIMS, "email_verified": "false"}
        profile = await _adapter(lambda r: httpx.Response(200, json=claims)).verify_id_token("t")
        self.assertFalse(profile.email_verified)


class TestExchangeCode(unittest.IsolatedAsyncioTestCase):

    async def test_code_exchange_then_userinfo(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if str(request.url) == GOOGLE_TOKEN_URL:
                form = parse_qs(request.content.decode())
                self.assertEqual(form["code"], ["auth-code"])
                self.assertEqual(form["grant_type"], ["authorization_code"])
                return httpx.Response(200, json={"access_token": "at-1"})
            self.assertEqual(request.headers["Authorization"], "Bearer at-1")
            return httpx.Response(200, json={
                "sub": "1122334455",
                "email": "carol@example.com",
                "email_verified": True,
                "name": "Carol",
            })

        profile = await _adapter(handler).exchange_code("auth-code")

        self.assertEqual(profile.provider_id, "1122334455")
        self.assertIsNone(profile.avatar_url)

    async def test_rejected_code(self):
        handler = lambda r: httpx.Response(400, json={"error": "invalid_grant"})
        with self.assertRaises(ProviderError):
            await _adapter(handler).exchange_code("stale")

    async def test_missing_access_token(self):
        with self.assertRaises(ProviderError):
            await _adapter(lambda r: httpx.Response(200, json={})).exchange_code("code")


if __name__ == "__main__":
    unittest.main()
