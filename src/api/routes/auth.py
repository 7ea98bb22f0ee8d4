"""Authentication routes (register, login, password management, Google sign-in)."""

import json
import logging
import os
from datetime import timedelta
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.responses import RedirectResponse

from api.dependencies import get_mailer, get_oauth_provider, get_public_base_url, get_user_repo
from api.models import (
    AuthResponse,
    CurrentUserResponse,
    ForgotPasswordRequest,
    ForgotPasswordResponse,
    GoogleTokenRequest,
    LoginRequest,
    MessageResponse,
    PreferencesRequest,
    PreferencesResponse,
    PreferencesModel,
    RegisterRequest,
    ResetPasswordRequest,
    UpdateDetailsRequest,
    UpdatePasswordRequest,
    UserResponse,
)
from api.security import (
    IS_PRODUCTION,
    clear_session_cookie,
    get_current_user_required,
    get_token_issuer,
    set_session_cookie,
)
from domain.model.errors import ProviderError
from domain.model.user import User
from port.mailer import Mailer
from port.oauth_provider import OAuthProvider
from port.user_repository import UserRepository
from services import auth_service, profile_service
from services.auth_service import AuthSession
from services.token_issuer import TokenIssuer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

OAUTH_STATE_PURPOSE = "oauth_state"
OAUTH_STATE_TTL = timedelta(minutes=10)
OAUTH_DEFAULT_REDIRECT = os.getenv("OAUTH_DEFAULT_REDIRECT", "todo-app://auth/success")


def _allowed_redirect_prefixes() -> list[str]:
    raw = os.getenv("OAUTH_ALLOWED_REDIRECT_PREFIXES", "")
    return [p.strip() for p in raw.split(",") if p.strip()]


def _session_response(session: AuthSession, response: Response) -> AuthResponse:
    set_session_cookie(response, session.token)
    return AuthResponse(token=session.token, user=UserResponse.from_domain(session.user))


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    response: Response,
    repo: UserRepository = Depends(get_user_repo),
    tokens: TokenIssuer = Depends(get_token_issuer),
    mailer: Mailer = Depends(get_mailer),
):
    """Register a new local account.

    Raises:
        409 DuplicateEmail, 400 WeakPassword / ValidationFailed
    """
    session = await auth_service.register(
        repo, tokens, mailer,
        name=request.name,
        email=request.email,
        password=request.password,
    )
    return _session_response(session, response)


@router.post("/login", response_model=AuthResponse)
async def login(
    request: LoginRequest,
    response: Response,
    repo: UserRepository = Depends(get_user_repo),
    tokens: TokenIssuer = Depends(get_token_issuer),
):
    """Login with email and password.

    Raises:
        401 InvalidCredentials, whether the email or the password was wrong
    """
    session = await auth_service.login(repo, tokens, request.email, request.password)
    return _session_response(session, response)


@router.get("/me", response_model=CurrentUserResponse)
async def get_me(current_user: User = Depends(get_current_user_required)):
    """Get current authenticated user info."""
    return CurrentUserResponse(user=UserResponse.from_domain(current_user))


@router.put("/updatedetails", response_model=CurrentUserResponse)
async def update_details(
    request: UpdateDetailsRequest,
    current_user: User = Depends(get_current_user_required),
    repo: UserRepository = Depends(get_user_repo),
):
    user = profile_service.update_details(
        repo, current_user.id, name=request.name, email=request.email,
    )
    return CurrentUserResponse(user=UserResponse.from_domain(user))


@router.put("/updatepassword", response_model=AuthResponse)
async def update_password(
    request: UpdatePasswordRequest,
    response: Response,
    current_user: User = Depends(get_current_user_required),
    repo: UserRepository = Depends(get_user_repo),
    tokens: TokenIssuer = Depends(get_token_issuer),
):
    """Rotate the password and re-issue the session token.

    Raises:
        401 InvalidCredentials when the current password is wrong
    """
    session = await auth_service.change_password(
        repo, tokens, current_user.id,
        current_password=request.current_password,
        new_password=request.new_password,
    )
    return _session_response(session, response)


@router.put("/preferences", response_model=PreferencesResponse)
async def update_preferences(
    request: PreferencesRequest,
    current_user: User = Depends(get_current_user_required),
    repo: UserRepository = Depends(get_user_repo),
):
    user = profile_service.update_preferences(repo, current_user.id, request.preferences.to_domain())
    return PreferencesResponse(preferences=PreferencesModel.from_domain(user.preferences))


@router.get("/logout", response_model=MessageResponse)
async def logout(response: Response):
    """Clear the session cookie. Bearer tokens stay valid until they expire."""
    clear_session_cookie(response)
    return MessageResponse(message="User logged out successfully")


@router.post("/forgotpassword", response_model=ForgotPasswordResponse, response_model_exclude_none=True)
async def forgot_password(
    request: ForgotPasswordRequest,
    repo: UserRepository = Depends(get_user_repo),
    mailer: Mailer = Depends(get_mailer),
    base_url: str = Depends(get_public_base_url),
):
    """Email a one-time reset link.

    Outside production the raw token is echoed back to ease manual testing.

    Raises:
        404 NoSuchUser, 502 EmailDeliveryFailed
    """
    raw = await auth_service.request_password_reset(
        repo, mailer, request.email, reset_url_base=f"{base_url}/reset-password",
    )
    return ForgotPasswordResponse(
        message="Password reset email sent successfully",
        reset_token=None if IS_PRODUCTION else raw,
    )


@router.put("/resetpassword/{reset_token}", response_model=AuthResponse)
async def reset_password(
    reset_token: str,
    request: ResetPasswordRequest,
    response: Response,
    repo: UserRepository = Depends(get_user_repo),
    tokens: TokenIssuer = Depends(get_token_issuer),
):
    """Consume a reset token and set a new password.

    Raises:
        400 InvalidOrExpiredToken
    """
    session = await auth_service.complete_password_reset(repo, tokens, reset_token, request.password)
    return _session_response(session, response)


# ── Google OAuth ────────────────────────────────────────


@router.get("/google")
async def google_login(
    redirect_uri: Optional[str] = Query(None),
    provider: OAuthProvider = Depends(get_oauth_provider),
    tokens: TokenIssuer = Depends(get_token_issuer),
):
    """Start the browser OAuth flow.

    The app's redirect target travels inside a signed, short-lived ``state``.
    """
    _check_redirect_target(redirect_uri)
    state = tokens.sign_claims(
        {"purpose": OAUTH_STATE_PURPOSE, "redirect_uri": redirect_uri},
        expires_in=OAUTH_STATE_TTL,
    )
    return RedirectResponse(provider.authorization_url(state))


@router.get("/google/callback")
async def google_callback(
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    repo: UserRepository = Depends(get_user_repo),
    provider: OAuthProvider = Depends(get_oauth_provider),
    tokens: TokenIssuer = Depends(get_token_issuer),
):
    """Finish the browser OAuth flow and hand the session to the app via redirect."""
    if error:
        logger.info("Google consent not granted", extra={"error": error})
        raise ProviderError("Google sign-in was cancelled or denied")
    if not code:
        raise ProviderError("Missing authorization code")

    claims = tokens.read_claims(state) if state else None
    if not claims or claims.get("purpose") != OAUTH_STATE_PURPOSE:
        raise ProviderError("Invalid OAuth state")

    session = await auth_service.login_with_google_code(repo, tokens, provider, code)

    target = claims.get("redirect_uri") or OAUTH_DEFAULT_REDIRECT
    user_json = json.dumps(UserResponse.from_domain(session.user).model_dump(mode="json", by_alias=True))
    separator = "&" if "?" in target else "?"
    redirect = RedirectResponse(
        f"{target}{separator}{urlencode({'token': session.token, 'user': user_json})}",
        status_code=status.HTTP_302_FOUND,
    )
    set_session_cookie(redirect, session.token)
    return redirect


@router.post("/google/mobile", response_model=AuthResponse)
async def google_mobile(
    request: GoogleTokenRequest,
    response: Response,
    repo: UserRepository = Depends(get_user_repo),
    provider: OAuthProvider = Depends(get_oauth_provider),
    tokens: TokenIssuer = Depends(get_token_issuer),
):
    """Sign in from a native app holding a Google ID token.

    Raises:
        400 MissingIdToken, 502 ProviderError
    """
    session = await auth_service.login_with_google_id_token(repo, tokens, provider, request.id_token)
    return _session_response(session, response)


@router.post("/google/web", response_model=AuthResponse)
async def google_web(
    request: GoogleTokenRequest,
    response: Response,
    repo: UserRepository = Depends(get_user_repo),
    provider: OAuthProvider = Depends(get_oauth_provider),
    tokens: TokenIssuer = Depends(get_token_issuer),
):
    """Sign in from a web/Expo client holding a Google ID token."""
    session = await auth_service.login_with_google_id_token(repo, tokens, provider, request.id_token)
    return _session_response(session, response)


def _check_redirect_target(redirect_uri: Optional[str]) -> None:
    prefixes = _allowed_redirect_prefixes()
    if redirect_uri and prefixes and not any(redirect_uri.startswith(p) for p in prefixes):
        logger.warning("Rejected OAuth redirect target", extra={"redirect_uri": redirect_uri})
        raise ProviderError("Redirect URI is not allowed")
