"""Domain-level exceptions.

Services raise these errors to express business rule violations.
The API layer maps them to HTTP status codes and a structured body
carrying the stable ``kind`` and a human-readable message.
"""


class DomainError(Exception):
    """Base class for all domain errors."""
    kind = 'DomainError'
    default_message = 'Request could not be completed'

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(DomainError):
    """Input violates a business validation rule."""
    kind = 'ValidationFailed'
    default_message = 'Validation failed'


class WeakPasswordError(ValidationError):
    """Password does not satisfy the complexity policy."""
    kind = 'WeakPassword'
    default_message = 'Password is too weak'


class MissingIdTokenError(ValidationError):
    kind = 'MissingIdToken'
    default_message = 'ID token is required'


class InvalidCredentialsError(DomainError):
    """Email/password pair rejected. Never says which half was wrong."""
    kind = 'InvalidCredentials'
    default_message = 'Invalid credentials'


class InvalidOrExpiredTokenError(DomainError):
    """Reset secret unknown, already consumed, or past its window."""
    kind = 'InvalidOrExpiredToken'
    default_message = 'Invalid or expired reset token'


class UnauthenticatedError(DomainError):
    kind = 'Unauthenticated'
    default_message = 'Not authenticated'


class DuplicateError(DomainError):
    """Entity with the same unique key already exists."""
    kind = 'Duplicate'
    default_message = 'Entity already exists'


class DuplicateEmailError(DuplicateError):
    kind = 'DuplicateEmail'
    default_message = 'User already exists with this email'


class NotFoundError(DomainError):
    """Requested entity does not exist."""
    kind = 'NotFound'
    default_message = 'Not found'


class NoSuchUserError(NotFoundError):
    kind = 'NoSuchUser'
    default_message = 'No user found with that email address'


class EmailDeliveryError(DomainError):
    """Outbound email could not be handed to the mail server."""
    kind = 'EmailDeliveryFailed'
    default_message = 'Email could not be sent'


class ProviderError(DomainError):
    """Third-party identity provider rejected or failed the exchange."""
    kind = 'ProviderError'
    default_message = 'Authentication with the identity provider failed'
