"""
Password hashing, JWT tokens and the FastAPI dependencies that turn a
bearer token into an authenticated principal.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext

from .config import Settings
from .errors import AuthenticationError, ForbiddenError
from .models import ROLE_ADMIN, ROLE_HOST

pwd_context = CryptContext(
    schemes=["pbkdf2_sha256"],
    deprecated="auto",
)

bearer_scheme = HTTPBearer(auto_error=False)

VERIFY_EMAIL_PURPOSE = "verify-email"


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class Principal:
    """The authenticated caller, as carried by the access token."""

    id: int
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def is_host(self) -> bool:
        return self.role == ROLE_HOST


def hash_password(password: str) -> str:
    """
    Hash a plain-text password for storage.
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain-text password against the stored hash.
    Unrecognised stored values (e.g. legacy plaintext rows) never match.
    """
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        return False


def _secret(settings: Settings) -> str:
    if not settings.jwt_secret:
        raise RuntimeError("JWT_SECRET not set - please configure it in the environment")
    return settings.jwt_secret


def _encode(claims: dict, settings: Settings, expires_delta: timedelta) -> str:
    to_encode = dict(claims)
    to_encode["exp"] = datetime.now(timezone.utc) + expires_delta
    return jwt.encode(to_encode, _secret(settings), algorithm=settings.jwt_algorithm)


def _decode(token: str, settings: Settings) -> dict:
    """
    Raises JWTError if invalid/expired.
    """
    return jwt.decode(token, _secret(settings), algorithms=[settings.jwt_algorithm])


# PUBLIC_INTERFACE
def create_access_token(
    user_id: int,
    role: str,
    settings: Settings,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Issues a login token carrying the user id and role.
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)
    return _encode({"id": user_id, "role": role}, settings, expires_delta)


# PUBLIC_INTERFACE
def create_verification_token(user_id: int, settings: Settings) -> str:
    return _encode(
        {"id": user_id, "purpose": VERIFY_EMAIL_PURPOSE},
        settings,
        timedelta(minutes=settings.verification_token_expire_minutes),
    )


# PUBLIC_INTERFACE
def read_verification_token(token: str, settings: Settings) -> Optional[int]:
    """
    Returns the user id from an email verification token, or None when the
    token is invalid, expired or was issued for something else.
    """
    try:
        payload = _decode(token, settings)
    except JWTError:
        return None
    if payload.get("purpose") != VERIFY_EMAIL_PURPOSE:
        return None
    user_id = payload.get("id")
    return user_id if isinstance(user_id, int) else None


def get_settings_from_request(request: Request) -> Settings:
    return request.app.state.settings


# PUBLIC_INTERFACE
def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    settings: Settings = Depends(get_settings_from_request),
) -> Principal:
    """
    Validates the bearer token and returns the caller.
    Missing token -> 401, invalid or expired token -> 403.
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Access token required.")
    try:
        payload = _decode(credentials.credentials, settings)
    except JWTError:
        raise ForbiddenError("Invalid or expired token.")

    user_id = payload.get("id")
    role = payload.get("role")
    if not isinstance(user_id, int) or role not in (ROLE_ADMIN, ROLE_HOST):
        raise ForbiddenError("Invalid or expired token.")
    return Principal(id=user_id, role=role)


def require_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    if not principal.is_admin:
        raise ForbiddenError("Admin access required.")
    return principal


def require_host(principal: Principal = Depends(get_current_principal)) -> Principal:
    if not principal.is_host:
        raise ForbiddenError("Host access required.")
    return principal
