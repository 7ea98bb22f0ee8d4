"""Signed, time-limited session tokens (JWT, HS256)."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

logger = logging.getLogger(__name__)

DEFAULT_ALGORITHM = "HS256"


class TokenIssuer:
    """Issues and verifies stateless session tokens.

    Tokens carry the user id in ``sub`` plus ``iat``/``exp``. There is no
    revocation list: expiry is the only bound on a token's lifetime.
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = DEFAULT_ALGORITHM,
        expires_in: timedelta = timedelta(days=30),
    ):
        if not secret:
            raise ValueError("Token signing secret must not be empty")
        self._secret = secret
        self.algorithm = algorithm
        self.expires_in = expires_in

    def issue(self, user_id: str, now: Optional[datetime] = None) -> str:
        issued_at = now or datetime.now(timezone.utc)
        payload = {
            "sub": user_id,
            "iat": issued_at,
            "exp": issued_at + self.expires_in,
        }
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def verify(self, token: str) -> Optional[str]:
        """Return the user id, or None for any bad, forged or expired token."""
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self.algorithm])
        except JWTError as e:
            logger.debug(f"JWT verification failed: {e}")
            return None

        user_id = payload.get("sub")
        if not isinstance(user_id, str) or not user_id:
            return None
        return user_id

    def sign_claims(self, claims: dict, expires_in: timedelta) -> str:
        """Sign arbitrary short-lived claims (e.g. OAuth state)."""
        payload = dict(claims)
        payload["exp"] = datetime.now(timezone.utc) + expires_in
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def read_claims(self, token: str) -> Optional[dict]:
        try:
            return jwt.decode(token, self._secret, algorithms=[self.algorithm])
        except JWTError as e:
            logger.debug(f"Signed claims rejected: {e}")
            return None
