import os
from functools import lru_cache

from fastapi import HTTPException

from adapter.external.fastapi_mailer import FastApiMailer
from adapter.external.google_oauth import GoogleOAuthAdapter
from adapter.mongodb.connection import get_mongodb_client, DATABASE_NAME
from adapter.mongodb.user_repository import MongoUserRepository
from port.mailer import Mailer
from port.oauth_provider import OAuthProvider
from port.user_repository import UserRepository
from services.reset_token_service import RESET_TOKEN_EXPIRE_MINUTES


def _get_db():
    """Get MongoDB database, raising 503 if unavailable."""
    client = get_mongodb_client()
    if client is None:
        raise HTTPException(status_code=503, detail="Database unavailable")
    return client[DATABASE_NAME]


def get_user_repo() -> UserRepository:
    return MongoUserRepository(_get_db())


@lru_cache(maxsize=1)
def get_mailer() -> Mailer:
    return FastApiMailer(reset_expire_minutes=RESET_TOKEN_EXPIRE_MINUTES)


@lru_cache(maxsize=1)
def get_oauth_provider() -> OAuthProvider:
    return GoogleOAuthAdapter()


def get_public_base_url() -> str:
    """Origin used to build links in outgoing email."""
    return os.getenv("PUBLIC_BASE_URL", "http://localhost:8000").rstrip("/")
