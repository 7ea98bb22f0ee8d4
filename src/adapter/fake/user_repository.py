"""In-memory implementation of UserRepository for testing."""

import copy
import uuid
from datetime import datetime, timezone
from domain.model.user import AuthProvider, Preferences, User


class FakeUserRepository:
    def __init__(self):
        self.store: dict[str, User] = {}

    def _snapshot(self, user: User | None) -> User | None:
        # Callers get detached copies, like documents read back from MongoDB
        return copy.deepcopy(user) if user else None

    # ── write operations ─────────────────────────────────────

    def create(
        self,
        email: str,
        name: str,
        password_hash: str | None = None,
        provider: str = 'local',
        google_id: str | None = None,
        avatar: str | None = None,
        is_email_verified: bool = False,
    ) -> User | None:
        if any(u.email == email for u in self.store.values()):
            return None
        if google_id and any(u.google_id == google_id for u in self.store.values()):
            return None

        user_id = uuid.uuid4().hex
        now = datetime.now(timezone.utc)

        user = User(
            id=user_id,
            name=name,
            email=email,
            created_at=now,
            updated_at=now,
            provider=AuthProvider(provider),
            password_hash=password_hash,
            google_id=google_id,
            avatar=avatar,
            is_email_verified=is_email_verified,
        )
        self.store[user_id] = user
        return self._snapshot(user)

    def update_last_login(self, user_id: str) -> bool:
        user = self.store.get(user_id)
        if not user:
            return False

        now = datetime.now(timezone.utc)
        user.last_login = now
        user.updated_at = now
        return True

    def set_password(self, user_id: str, password_hash: str) -> User | None:
        user = self.store.get(user_id)
        if not user:
            return None
        user.password_hash = password_hash
        user.reset_password_token = None
        user.reset_password_expire = None
        user.updated_at = datetime.now(timezone.utc)
        return self._snapshot(user)

    def set_reset_token(self, user_id: str, token_hash: str, expires_at: datetime) -> bool:
        user = self.store.get(user_id)
        if not user:
            return False
        user.reset_password_token = token_hash
        user.reset_password_expire = expires_at
        return True

    def clear_reset_token(self, user_id: str) -> bool:
        user = self.store.get(user_id)
        if not user:
            return False
        user.reset_password_token = None
        user.reset_password_expire = None
        return True

    def consume_reset_token(self, token_hash: str, now: datetime, password_hash: str) -> User | None:
        for user in self.store.values():
            if user.reset_password_token == token_hash and user.has_pending_reset(now):
                user.password_hash = password_hash
                user.reset_password_token = None
                user.reset_password_expire = None
                user.updated_at = now
                return self._snapshot(user)
        return None

    def update_google_identity(
        self,
        user_id: str,
        google_id: str,
        avatar: str | None,
        is_email_verified: bool = True,
    ) -> User | None:
        user = self.store.get(user_id)
        if not user:
            return None
        user.google_id = google_id
        user.avatar = avatar
        user.is_email_verified = is_email_verified
        user.updated_at = datetime.now(timezone.utc)
        return self._snapshot(user)

    def update_fields(self, user_id: str, fields: dict) -> User | None:
        user = self.store.get(user_id)
        if not user:
            return None
        email = fields.get('email')
        if email and any(u.email == email and u.id != user_id for u in self.store.values()):
            return None
        for key, value in fields.items():
            setattr(user, key, value)
        user.updated_at = datetime.now(timezone.utc)
        return self._snapshot(user)

    def update_preferences(self, user_id: str, preferences: Preferences) -> User | None:
        user = self.store.get(user_id)
        if not user:
            return None
        user.preferences = copy.deepcopy(preferences)
        user.updated_at = datetime.now(timezone.utc)
        return self._snapshot(user)

    def delete(self, user_id: str) -> bool:
        return self.store.pop(user_id, None) is not None

    # ── read operations ──────────────────────────────────────

    def get_by_email(self, email: str) -> User | None:
        for user in self.store.values():
            if user.email == email:
                return self._snapshot(user)
        return None

    def get_by_id(self, user_id: str) -> User | None:
        return self._snapshot(self.store.get(user_id))

    def get_by_google_id(self, google_id: str) -> User | None:
        for user in self.store.values():
            if user.google_id == google_id:
                return self._snapshot(user)
        return None
