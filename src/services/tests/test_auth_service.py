"""Unit tests for auth_service module."""

import asyncio
import unittest
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

from pymongo.errors import ServerSelectionTimeoutError

from adapter.fake.mailer import FakeMailer
from adapter.fake.oauth_provider import FakeOAuthProvider
from adapter.fake.user_repository import FakeUserRepository
from adapter.mongodb.user_repository import MongoUserRepository
from domain.model.errors import (
    DuplicateEmailError,
    EmailDeliveryError,
    InvalidCredentialsError,
    InvalidOrExpiredTokenError,
    MissingIdTokenError,
    NoSuchUserError,
    ProviderError,
    WeakPasswordError,
)
from domain.model.oauth import ExternalProfile
from services import auth_service
from services.reset_token_service import hash_reset_secret
from services.token_issuer import TokenIssuer

RESET_BASE = "https://todo.example/reset-password"


class AuthServiceTestCase(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.repo = FakeUserRepository()
        self.mailer = FakeMailer()
        self.tokens = TokenIssuer("test-secret")

    async def _register(self, email="alice@example.com", password="Passw0rd", name="Alice"):
        return await auth_service.register(self.repo, self.tokens, self.mailer, name, email, password)


class TestRegister(AuthServiceTestCase):

    async def test_register_returns_verifiable_session(self):
        session = await self._register()
        await auth_service.wait_for_background_tasks()

        self.assertEqual(self.tokens.verify(session.token), session.user.id)
        self.assertEqual(session.user.email, "alice@example.com")
        self.assertNotEqual(session.user.password_hash, "Passw0rd")
        self.assertEqual(self.mailer.last("welcome").to, "alice@example.com")

    async def test_register_normalizes_email(self):
        session = await self._register(email="  Alice@Example.COM ")
        self.assertEqual(session.user.email, "alice@example.com")

    async def test_duplicate_email_rejected(self):
        await self._register()
        with self.assertRaises(DuplicateEmailError):
            await self._register(email="ALICE@example.com", name="Other")
        self.assertEqual(len(self.repo.store), 1)

    async def test_weak_password_rejected_without_creating_user(self):
        with self.assertRaises(WeakPasswordError):
            await self._register(password="short")
        self.assertEqual(self.repo.store, {})

    async def test_welcome_email_failure_keeps_registration(self):
        self.mailer.fail_welcome = True

        session = await self._register()
        await auth_service.wait_for_background_tasks()

        self.assertIn(session.user.id, self.repo.store)
        self.assertIsNone(self.mailer.last("welcome"))

    async def test_register_does_not_wait_for_welcome_email(self):
        release = asyncio.Event()
        sent = []

        async def slow_welcome(email, name):
            await release.wait()
            sent.append(email)

        self.mailer.send_welcome = slow_welcome

        session = await self._register()

        self.assertEqual(self.tokens.verify(session.token), session.user.id)
        self.assertEqual(sent, [])
        release.set()
        await auth_service.wait_for_background_tasks()
        self.assertEqual(sent, ["alice@example.com"])


class TestLogin(AuthServiceTestCase):

    async def test_login_with_correct_password(self):
        registered = await self._register()

        session = await auth_service.login(self.repo, self.tokens, "alice@example.com", "Passw0rd")

        self.assertEqual(session.user.id, registered.user.id)
        self.assertEqual(self.tokens.verify(session.token), registered.user.id)
        self.assertIsNotNone(self.repo.store[registered.user.id].last_login)

    async def test_wrong_password_and_unknown_email_are_indistinguishable(self):
        await self._register()

        with self.assertRaises(InvalidCredentialsError) as wrong_password:
            await auth_service.login(self.repo, self.tokens, "alice@example.com", "Wrong0ne")
        with self.assertRaises(InvalidCredentialsError) as unknown_email:
            await auth_service.login(self.repo, self.tokens, "nobody@example.com", "Passw0rd")

        self.assertEqual(wrong_password.exception.kind, unknown_email.exception.kind)
        self.assertEqual(wrong_password.exception.message, unknown_email.exception.message)

    async def test_google_only_account_cannot_password_login(self):
        self.repo.create(email="g@example.com", name="G", provider="google", google_id="g-1")

        with self.assertRaises(InvalidCredentialsError):
            await auth_service.login(self.repo, self.tokens, "g@example.com", "Passw0rd")


class TestChangePassword(AuthServiceTestCase):

    async def test_change_password_rotates_and_issues_token(self):
        registered = await self._register()

        session = await auth_service.change_password(
            self.repo, self.tokens, registered.user.id, "Passw0rd", "NewPassw1",
        )

        self.assertEqual(self.tokens.verify(session.token), registered.user.id)
        await auth_service.login(self.repo, self.tokens, "alice@example.com", "NewPassw1")
        with self.assertRaises(InvalidCredentialsError):
            await auth_service.login(self.repo, self.tokens, "alice@example.com", "Passw0rd")

    async def test_wrong_current_password_leaves_password_unchanged(self):
        registered = await self._register()

        with self.assertRaises(InvalidCredentialsError):
            await auth_service.change_password(
                self.repo, self.tokens, registered.user.id, "Wrong0ne", "NewPassw1",
            )

        await auth_service.login(self.repo, self.tokens, "alice@example.com", "Passw0rd")

    async def test_weak_new_password_leaves_password_unchanged(self):
        registered = await self._register()

        with self.assertRaises(WeakPasswordError):
            await auth_service.change_password(
                self.repo, self.tokens, registered.user.id, "Passw0rd", "weak",
            )

        await auth_service.login(self.repo, self.tokens, "alice@example.com", "Passw0rd")

    async def test_old_token_stays_valid_after_change(self):
        registered = await self._register()
        await auth_service.change_password(
            self.repo, self.tokens, registered.user.id, "Passw0rd", "NewPassw1",
        )
        self.assertEqual(self.tokens.verify(registered.token), registered.user.id)


class TestPasswordReset(AuthServiceTestCase):

    async def test_forgot_then_reset_scenario(self):
        registered = await self._register()

        raw = await auth_service.request_password_reset(
            self.repo, self.mailer, "alice@example.com", RESET_BASE,
        )

        mail = self.mailer.last("password_reset")
        self.assertEqual(mail.to, "alice@example.com")
        self.assertEqual(mail.payload, f"{RESET_BASE}/{raw}")
        self.assertEqual(self.repo.store[registered.user.id].reset_password_token, hash_reset_secret(raw))

        session = await auth_service.complete_password_reset(self.repo, self.tokens, raw, "NewPassw1")

        self.assertEqual(session.user.id, registered.user.id)
        self.assertIsNone(self.repo.store[registered.user.id].reset_password_token)
        with self.assertRaises(InvalidCredentialsError):
            await auth_service.login(self.repo, self.tokens, "alice@example.com", "Passw0rd")
        await auth_service.login(self.repo, self.tokens, "alice@example.com", "NewPassw1")

        with self.assertRaises(InvalidOrExpiredTokenError):
            await auth_service.complete_password_reset(self.repo, self.tokens, raw, "Another1x")

    async def test_unknown_email_raises(self):
        with self.assertRaises(NoSuchUserError):
            await auth_service.request_password_reset(
                self.repo, self.mailer, "nobody@example.com", RESET_BASE,
            )
        self.assertEqual(self.mailer.sent, [])

    async def test_delivery_failure_rolls_back(self):
        registered = await self._register()
        self.mailer.fail_reset = True

        with self.assertRaises(EmailDeliveryError):
            await auth_service.request_password_reset(
                self.repo, self.mailer, "alice@example.com", RESET_BASE,
            )

        stored = self.repo.store[registered.user.id]
        self.assertIsNone(stored.reset_password_token)
        self.assertIsNone(stored.reset_password_expire)

    async def test_unexpected_mailer_error_is_wrapped_and_rolled_back(self):
        registered = await self._register()
        self.mailer.send_password_reset = AsyncMock(side_effect=OSError("network down"))

        with self.assertRaises(EmailDeliveryError):
            await auth_service.request_password_reset(
                self.repo, self.mailer, "alice@example.com", RESET_BASE,
            )
        self.assertIsNone(self.repo.store[registered.user.id].reset_password_token)

    async def test_expired_secret_rejected(self):
        registered = await self._register()
        raw = await auth_service.request_password_reset(
            self.repo, self.mailer, "alice@example.com", RESET_BASE,
        )
        self.repo.store[registered.user.id].reset_password_expire = (
            datetime.now(timezone.utc) - timedelta(seconds=1)
        )

        with self.assertRaises(InvalidOrExpiredTokenError):
            await auth_service.complete_password_reset(self.repo, self.tokens, raw, "NewPassw1")
        await auth_service.login(self.repo, self.tokens, "alice@example.com", "Passw0rd")

    async def test_weak_password_does_not_consume_secret(self):
        await self._register()
        raw = await auth_service.request_password_reset(
            self.repo, self.mailer, "alice@example.com", RESET_BASE,
        )

        with self.assertRaises(WeakPasswordError):
            await auth_service.complete_password_reset(self.repo, self.tokens, raw, "weak")

        session = await auth_service.complete_password_reset(self.repo, self.tokens, raw, "NewPassw1")
        self.assertEqual(session.user.email, "alice@example.com")


class TestGoogleSignIn(AuthServiceTestCase):

    def setUp(self):
        super().setUp()
        self.profile = ExternalProfile(
            provider_id="g-42",
            email="carol@example.com",
            name="Carol",
            avatar_url="https://img.example/carol.png",
        )
        self.provider = FakeOAuthProvider(
            codes={"good-code": self.profile},
            id_tokens={"good-token": self.profile},
        )

    async def test_code_flow_creates_account_and_session(self):
        session = await auth_service.login_with_google_code(
            self.repo, self.tokens, self.provider, "good-code",
        )

        self.assertEqual(session.user.google_id, "g-42")
        self.assertEqual(self.tokens.verify(session.token), session.user.id)

    async def test_id_token_flow_reuses_account(self):
        first = await auth_service.login_with_google_code(self.repo, self.tokens, self.provider, "good-code")
        second = await auth_service.login_with_google_id_token(
            self.repo, self.tokens, self.provider, "good-token",
        )
        self.assertEqual(first.user.id, second.user.id)

    async def test_missing_id_token(self):
        for token in (None, ""):
            with self.subTest(token=token):
                with self.assertRaises(MissingIdTokenError):
                    await auth_service.login_with_google_id_token(
                        self.repo, self.tokens, self.provider, token,
                    )

    async def test_rejected_code_creates_nothing(self):
        with self.assertRaises(ProviderError):
            await auth_service.login_with_google_code(self.repo, self.tokens, self.provider, "bad-code")
        self.assertEqual(self.repo.store, {})


class TestStorageOutage(unittest.IsolatedAsyncioTestCase):
    """A database outage surfaces as itself, never as a lookup result."""

    def setUp(self):
        self.collection = MagicMock()
        db = MagicMock()
        db.__getitem__.return_value = self.collection
        self.repo = MongoUserRepository(db)
        self.mailer = FakeMailer()
        self.tokens = TokenIssuer("test-secret")

    async def test_register_insert_failure_is_not_duplicate_email(self):
        self.collection.find_one.return_value = None
        self.collection.insert_one.side_effect = ServerSelectionTimeoutError("No servers available")

        with self.assertRaises(ServerSelectionTimeoutError):
            await auth_service.register(
                self.repo, self.tokens, self.mailer, "Alice", "alice@example.com", "Passw0rd",
            )
        self.assertEqual(self.mailer.sent, [])

    async def test_forgot_password_lookup_failure_is_not_no_such_user(self):
        self.collection.find_one.side_effect = ServerSelectionTimeoutError("No servers available")

        with self.assertRaises(ServerSelectionTimeoutError):
            await auth_service.request_password_reset(
                self.repo, self.mailer, "alice@example.com", RESET_BASE,
            )
        self.assertEqual(self.mailer.sent, [])

    async def test_login_lookup_failure_is_not_invalid_credentials(self):
        self.collection.find_one.side_effect = ServerSelectionTimeoutError("No servers available")

        with self.assertRaises(ServerSelectionTimeoutError):
            await auth_service.login(self.repo, self.tokens, "alice@example.com", "Passw0rd")


if __name__ == "__main__":
    unittest.main()
