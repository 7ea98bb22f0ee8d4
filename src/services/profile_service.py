"""Profile service: account details, preferences, avatar, birthday and deletion."""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone

from domain.model.errors import DuplicateEmailError, NotFoundError, ValidationError
from domain.model.user import THEMES, Preferences, User, normalize_email
from port.user_repository import UserRepository

logger = logging.getLogger(__name__)

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 50

# Sentinel distinguishing "field omitted" from an explicit null
UNSET = object()


@dataclass
class BirthdayStatus:
    is_birthday: bool
    age: int | None
    message: str
    date_of_birth: datetime | None


def _validate_name(name: str) -> str:
    name = name.strip()
    if not NAME_MIN_LENGTH <= len(name) <= NAME_MAX_LENGTH:
        raise ValidationError(
            f"Name must be between {NAME_MIN_LENGTH} and {NAME_MAX_LENGTH} characters"
        )
    return name


def _apply(repo: UserRepository, user_id: str, fields: dict) -> User:
    user = repo.update_fields(user_id, fields)
    if user is None:
        if 'email' in fields and repo.get_by_id(user_id) is not None:
            raise DuplicateEmailError()
        raise NotFoundError("User not found")
    return user


def update_details(
    repo: UserRepository,
    user_id: str,
    name: str | None = None,
    email: str | None = None,
) -> User:
    """Change name and/or email.

    Raises:
        ValidationError: name length out of range
        DuplicateEmailError: email belongs to another account
    """
    fields: dict = {}
    if name is not None:
        fields['name'] = _validate_name(name)
    if email is not None:
        email = normalize_email(email)
        existing = repo.get_by_email(email)
        if existing and existing.id != user_id:
            raise DuplicateEmailError()
        fields['email'] = email

    if not fields:
        user = repo.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user
    return _apply(repo, user_id, fields)


def update_profile(
    repo: UserRepository,
    user_id: str,
    name: str | None = None,
    date_of_birth=UNSET,
    now: datetime | None = None,
) -> User:
    """Change name and/or date of birth. An explicit None clears the date of birth.

    Raises:
        ValidationError: date of birth in the future
    """
    fields: dict = {}
    if name is not None and name.strip():
        fields['name'] = _validate_name(name)

    if date_of_birth is not UNSET:
        if date_of_birth is None:
            fields['date_of_birth'] = None
        else:
            dob = _as_datetime(date_of_birth)
            now = now or datetime.now(timezone.utc)
            if dob > now:
                raise ValidationError("Date of birth cannot be in the future")
            fields['date_of_birth'] = dob

    if not fields:
        user = repo.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user
    return _apply(repo, user_id, fields)


def update_avatar(repo: UserRepository, user_id: str, avatar: str | None) -> User:
    return _apply(repo, user_id, {'avatar': avatar or None})


def update_preferences(repo: UserRepository, user_id: str, preferences: Preferences) -> User:
    if preferences.theme not in THEMES:
        raise ValidationError(f"Theme must be one of: {', '.join(THEMES)}")
    user = repo.update_preferences(user_id, preferences)
    if user is None:
        raise NotFoundError("User not found")
    return user


def delete_account(repo: UserRepository, user_id: str) -> None:
    if not repo.delete(user_id):
        raise NotFoundError("User not found")
    logger.info("Account deleted", extra={"userId": user_id})


def birthday_status(user: User, today: date | None = None) -> BirthdayStatus:
    today = today or date.today()
    if user.date_of_birth is None:
        return BirthdayStatus(
            is_birthday=False, age=None, message="No date of birth set", date_of_birth=None,
        )

    age = user.age(today)
    if user.is_birthday(today):
        message = f"Happy {age}{ordinal_suffix(age)} Birthday, {user.name}!"
    else:
        days = (next_birthday(user.date_of_birth.date(), today) - today).days
        message = f"{days} days until your {age + 1}{ordinal_suffix(age + 1)} birthday!"

    return BirthdayStatus(
        is_birthday=user.is_birthday(today),
        age=age,
        message=message,
        date_of_birth=user.date_of_birth,
    )


def ordinal_suffix(n: int) -> str:
    if n % 100 in (11, 12, 13):
        return 'th'
    return {1: 'st', 2: 'nd', 3: 'rd'}.get(n % 10, 'th')


def next_birthday(born: date, today: date) -> date:
    candidate = _anniversary(born, today.year)
    if candidate < today:
        candidate = _anniversary(born, today.year + 1)
    return candidate


def _anniversary(born: date, year: int) -> date:
    try:
        return born.replace(year=year)
    except ValueError:
        # Feb 29 outside a leap year
        return date(year, 3, 1)


def _as_datetime(value) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    raise ValidationError("Invalid date of birth format")
