"""Pydantic models for API request/response.

JSON bodies use camelCase keys (``dateOfBirth``, ``isEmailVerified``,
``currentPassword``...). Python attributes stay snake_case.
"""

from datetime import date, datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from domain.model.user import Preferences, User


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PreferencesModel(CamelModel):
    """User UI preferences."""
    theme: Literal["light", "dark", "system"] = "system"
    notifications: bool = True
    language: str = Field("en", min_length=2, max_length=10)

    @classmethod
    def from_domain(cls, preferences: Preferences) -> "PreferencesModel":
        return cls(
            theme=preferences.theme,
            notifications=preferences.notifications,
            language=preferences.language,
        )

    def to_domain(self) -> Preferences:
        return Preferences(theme=self.theme, notifications=self.notifications, language=self.language)


class UserResponse(CamelModel):
    """Public view of an account. Never carries password or reset fields."""
    id: str
    name: str
    email: str
    avatar: Optional[str] = None
    date_of_birth: Optional[datetime] = None
    preferences: PreferencesModel = Field(default_factory=PreferencesModel)
    is_email_verified: bool = False
    provider: str = "local"
    google_id: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            avatar=user.avatar,
            date_of_birth=user.date_of_birth,
            preferences=PreferencesModel.from_domain(user.preferences),
            is_email_verified=user.is_email_verified,
            provider=user.provider.value,
            google_id=user.google_id,
            created_at=user.created_at,
        )


class ProfileResponse(UserResponse):
    """User profile with derived birthday fields."""
    age: Optional[int] = None
    is_birthday: bool = False

    @classmethod
    def from_domain(cls, user: User, today: date | None = None) -> "ProfileResponse":
        base = UserResponse.from_domain(user)
        return cls(
            **base.model_dump(),
            age=user.age(today),
            is_birthday=user.is_birthday(today),
        )


# ── Requests ────────────────────────────────────────────


class RegisterRequest(CamelModel):
    """Request model for user registration."""
    name: str = Field(..., min_length=2, max_length=50)
    email: EmailStr
    password: str


class LoginRequest(CamelModel):
    """Request model for user login."""
    email: EmailStr
    password: str = Field(..., min_length=1)


class UpdateDetailsRequest(CamelModel):
    name: Optional[str] = Field(None, min_length=2, max_length=50)
    email: Optional[EmailStr] = None


class UpdatePasswordRequest(CamelModel):
    current_password: str = Field(..., min_length=1)
    new_password: str


class PreferencesRequest(CamelModel):
    preferences: PreferencesModel


class ForgotPasswordRequest(CamelModel):
    email: EmailStr


class ResetPasswordRequest(CamelModel):
    password: str


class GoogleTokenRequest(CamelModel):
    """ID token minted by Google Sign-In on the client.

    Native clients also send the profile they received (``user``); it is
    ignored because the token itself is verified server-side.
    """
    id_token: Optional[str] = None
    user: Optional[dict[str, Any]] = None


class ProfileUpdateRequest(CamelModel):
    """Omitted fields are left unchanged; ``dateOfBirth: null`` clears the date."""
    name: Optional[str] = None
    date_of_birth: Optional[datetime | date] = None

    @field_validator("date_of_birth", mode="before")
    @classmethod
    def blank_as_null(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class AvatarRequest(CamelModel):
    avatar: Optional[str] = None


# ── Responses ───────────────────────────────────────────


class AuthResponse(CamelModel):
    """Response model for authentication."""
    success: bool = True
    token: str
    user: UserResponse


class CurrentUserResponse(CamelModel):
    success: bool = True
    user: UserResponse


class ProfileEnvelope(CamelModel):
    success: bool = True
    user: ProfileResponse


class MessageResponse(CamelModel):
    success: bool = True
    message: str


class ForgotPasswordResponse(MessageResponse):
    reset_token: Optional[str] = None


class PreferencesResponse(CamelModel):
    success: bool = True
    preferences: PreferencesModel


class AvatarResponse(CamelModel):
    success: bool = True
    avatar: Optional[str] = None


class BirthdayResponse(CamelModel):
    success: bool = True
    is_birthday: bool
    age: Optional[int] = None
    message: str
    date_of_birth: Optional[datetime] = None
