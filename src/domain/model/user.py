# domain/model/user.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum


class AuthProvider(str, Enum):
    """Where an account's primary credential lives."""
    LOCAL = 'local'
    GOOGLE = 'google'


THEMES = ('light', 'dark', 'system')


@dataclass
class Preferences:
    """Per-user UI preferences."""
    theme: str = 'system'
    notifications: bool = True
    language: str = 'en'

    @classmethod
    def from_dict(cls, data: dict | None) -> Preferences:
        if not data:
            return cls()
        return cls(
            theme=data.get('theme', 'system'),
            notifications=data.get('notifications', True),
            language=data.get('language', 'en'),
        )

    def to_dict(self) -> dict:
        return {
            'theme': self.theme,
            'notifications': self.notifications,
            'language': self.language,
        }


def normalize_email(email: str) -> str:
    """Canonical form used for storage and lookups."""
    return email.strip().lower()


@dataclass
class User:
    """Domain model representing an account."""
    id: str
    name: str
    email: str
    created_at: datetime
    updated_at: datetime
    provider: AuthProvider = AuthProvider.LOCAL
    password_hash: str | None = None
    google_id: str | None = None
    avatar: str | None = None
    date_of_birth: datetime | None = None
    preferences: Preferences = field(default_factory=Preferences)
    is_email_verified: bool = False
    reset_password_token: str | None = None
    reset_password_expire: datetime | None = None
    last_login: datetime | None = None

    def has_pending_reset(self, now: datetime | None = None) -> bool:
        """True while a stored reset hash exists and its window is still open.

        An expired hash may still be present on the record; it is treated
        as absent.
        """
        if self.reset_password_token is None or self.reset_password_expire is None:
            return False
        now = now or datetime.now(timezone.utc)
        return _as_utc(self.reset_password_expire) > now

    def age(self, today: date | None = None) -> int | None:
        if self.date_of_birth is None:
            return None
        today = today or date.today()
        born = self.date_of_birth.date()
        years = today.year - born.year
        if (today.month, today.day) < (born.month, born.day):
            years -= 1
        return years

    def is_birthday(self, today: date | None = None) -> bool:
        if self.date_of_birth is None:
            return False
        today = today or date.today()
        born = self.date_of_birth.date()
        return (today.month, today.day) == (born.month, born.day)


def _as_utc(value: datetime) -> datetime:
    # MongoDB returns naive datetimes (UTC) unless tz_aware is set
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
