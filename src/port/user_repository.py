from datetime import datetime
from typing import Protocol

from domain.model.user import Preferences, User


class UserRepository(Protocol):
    """Protocol defining the interface for user data access.

    Every write touches a single user record and is atomic at that
    granularity. Emails are passed already normalized.
    """
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
        """Create a new user. Return User, or None when the email or Google id is already taken.

        Storage failures raise rather than returning None.
        """
        ...

    def get_by_email(self, email: str) -> User | None:
        ...

    def get_by_id(self, user_id: str) -> User | None:
        ...

    def get_by_google_id(self, google_id: str) -> User | None:
        ...

    def update_last_login(self, user_id: str) -> bool:
        ...

    def set_password(self, user_id: str, password_hash: str) -> User | None:
        """Replace the password hash and clear any pending reset. Return the updated User."""
        ...

    def set_reset_token(self, user_id: str, token_hash: str, expires_at: datetime) -> bool:
        ...

    def clear_reset_token(self, user_id: str) -> bool:
        ...

    def consume_reset_token(self, token_hash: str, now: datetime, password_hash: str) -> User | None:
        """Atomically match an unexpired reset hash, set the new password and clear the reset fields.

        Return the updated User, or None when no record matches.
        """
        ...

    def update_google_identity(
        self,
        user_id: str,
        google_id: str,
        avatar: str | None,
        is_email_verified: bool = True,
    ) -> User | None:
        """Link/refresh the external identity on an existing record."""
        ...

    def update_fields(self, user_id: str, fields: dict) -> User | None:
        """Set profile fields (name, email, avatar, date_of_birth). None values unset the field."""
        ...

    def update_preferences(self, user_id: str, preferences: Preferences) -> User | None:
        ...

    def delete(self, user_id: str) -> bool:
        ...
