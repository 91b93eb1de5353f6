"""JWT verification and the explicit per-session auth context."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from fastapi import Header, HTTPException
from jose import JWTError, jwt

from .access import AccessGate, AccessLevel
from .config import get_settings
from .errors import Unauthorized

logger = logging.getLogger(__name__)

ALGORITHMS = ["HS256"]


def verify_token(token: str, secret: str) -> Dict[str, Any]:
    """Verify an HS256 JWT and return its claims. Raises Unauthorized."""
    try:
        return jwt.decode(token, secret, algorithms=ALGORITHMS)
    except JWTError as e:
        raise Unauthorized(f"Invalid token: {str(e)}") from e


def extract_user_id(payload: Dict[str, Any]) -> int:
    """The numeric `user_id` claim issued by the schema service."""
    user_id = payload.get("user_id")
    if isinstance(user_id, bool) or not isinstance(user_id, (int, float)):
        raise Unauthorized("Token missing numeric 'user_id' claim")
    return int(user_id)


@dataclass(frozen=True)
class AuthState:
    is_authenticated: bool
    access_level: Optional[AccessLevel] = None
    user_id: Optional[int] = None


class SessionContext:
    """Who is editing, and with what grant.

    Created empty; start() on login, grant() after a schema is loaded,
    teardown() on logout. Controllers receive this object instead of
    reading any module-level state.
    """

    def __init__(self):
        self.token: Optional[str] = None
        self.user_id: Optional[int] = None
        self.access_level: Optional[AccessLevel] = None
        self.share_token: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None and self.user_id is not None

    def start(self, token: str, secret: Optional[str] = None) -> AuthState:
        """Verify `token` and bind its user to this session."""
        secret = secret or get_settings().jwt_secret
        if not secret:
            raise RuntimeError("JWT_SECRET must be set to verify session tokens")
        payload = verify_token(token, secret)
        self.user_id = extract_user_id(payload)
        self.token = token
        logger.debug("Session started for user %s", self.user_id)
        return self.auth_state()

    def teardown(self) -> None:
        logger.debug("Session torn down for user %s", self.user_id)
        self.token = None
        self.user_id = None
        self.access_level = None
        self.share_token = None

    def grant(self, access_level: Optional[Union[AccessLevel, str]],
              share_token: Optional[str] = None) -> None:
        """Record the access level granted for the currently loaded schema."""
        self.access_level = AccessLevel(access_level) if access_level is not None else None
        self.share_token = share_token

    @property
    def effective_access_level(self) -> AccessLevel:
        """Explicit grant, else owner: a schema nobody shared with you is your own draft."""
        return self.access_level or AccessLevel.OWNER

    @property
    def gate(self) -> AccessGate:
        return AccessGate(self.effective_access_level)

    def auth_state(self) -> AuthState:
        return AuthState(
            is_authenticated=self.is_authenticated,
            access_level=self.effective_access_level,
            user_id=self.user_id,
        )

    def has_writer(self) -> bool:
        """True when someone is allowed to persist: a mutating grant held by
        a logged-in user or through a share token."""
        if not self.gate.can_mutate():
            return False
        return self.is_authenticated or self.share_token is not None

    def auth_headers(self) -> Dict[str, str]:
        if self.token:
            return {"Authorization": f"Bearer {self.token}"}
        return {}


def _bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise HTTPException(status_code=401, detail="Missing Authorization header")
    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer":
        raise HTTPException(status_code=401, detail="Invalid Authorization header format")
    return parts[1]


def _user_id_from_header(authorization: Optional[str]) -> int:
    token = _bearer_token(authorization)
    secret = get_settings().jwt_secret
    if not secret:
        logger.error("JWT_SECRET not configured, rejecting authenticated request")
        raise HTTPException(status_code=401, detail="Authentication is not configured")
    try:
        return extract_user_id(verify_token(token, secret))
    except Unauthorized as e:
        raise HTTPException(status_code=401, detail=str(e))


async def require_user_id(authorization: Optional[str] = Header(None)) -> int:
    """FastAPI dependency: verified user id or 401."""
    return _user_id_from_header(authorization)
