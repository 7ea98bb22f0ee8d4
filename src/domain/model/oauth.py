from dataclasses import dataclass


@dataclass(frozen=True)
class ExternalProfile:
    """Identity assertion returned by a third-party provider after verification."""
    provider_id: str
    email: str
    name: str
    avatar_url: str | None = None
    email_verified: bool = True
