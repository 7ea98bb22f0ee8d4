"""Session token configuration, cookie handling and the auth guard."""

import os
import logging
from datetime import timedelta
from typing import Optional
from fastapi import Depends, Request, Response
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from api.dependencies import get_user_repo
from domain.model.errors import UnauthenticatedError
from domain.model.user import User
from port.user_repository import UserRepository
from services.token_issuer import TokenIssuer

logger = logging.getLogger(__name__)

# JWT Configuration
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY")
if not JWT_SECRET_KEY:
    raise ValueError(
        "JWT_SECRET_KEY environment variable is required. "
        "Generate a secure key with: openssl rand -hex 32"
    )
JWT_ALGORITHM = "HS256"
JWT_EXPIRATION_DAYS = int(os.getenv("JWT_EXPIRATION_DAYS", 30))
JWT_COOKIE_EXPIRE_DAYS = int(os.getenv("JWT_COOKIE_EXPIRE_DAYS", 30))

SESSION_COOKIE_NAME = "token"
IS_PRODUCTION = os.getenv("ENVIRONMENT", "development") == "production"

security = HTTPBearer(auto_error=False)

_token_issuer = TokenIssuer(
    JWT_SECRET_KEY,
    algorithm=JWT_ALGORITHM,
    expires_in=timedelta(days=JWT_EXPIRATION_DAYS),
)


def get_token_issuer() -> TokenIssuer:
    return _token_issuer


def set_session_cookie(response: Response, token: str) -> None:
    """Attach the session token as an HTTP-only, same-site strict cookie."""
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        max_age=JWT_COOKIE_EXPIRE_DAYS * 24 * 60 * 60,
        httponly=True,
        secure=IS_PRODUCTION,
        samesite="strict",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=SESSION_COOKIE_NAME,
        httponly=True,
        secure=IS_PRODUCTION,
        samesite="strict",
    )


def _extract_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials],
) -> Optional[str]:
    # Authorization header wins over the cookie
    if credentials and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(SESSION_COOKIE_NAME) or None


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    user_repo: UserRepository = Depends(get_user_repo),
    tokens: TokenIssuer = Depends(get_token_issuer),
) -> Optional[User]:
    """Get current authenticated user (optional). Returns None if no valid session."""
    token = _extract_token(request, credentials)
    if not token:
        return None

    user_id = tokens.verify(token)
    if not user_id:
        return None

    return user_repo.get_by_id(user_id)


def get_current_user_required(
    user: Optional[User] = Depends(get_current_user),
) -> User:
    """Get current authenticated user (required).

    Missing, forged and expired tokens, and tokens for deleted accounts all
    produce the same Unauthenticated error.
    """
    if user is None:
        raise UnauthenticatedError()
    return user
