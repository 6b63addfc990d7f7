"""JWT authentication and RBAC authorization helpers."""

import bcrypt
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt

from grant_portal.core.config import settings
from grant_portal.core.middleware import client_ip

# JWT bearer scheme
security_scheme = HTTPBearer(auto_error=False)

ROLE_LEVELS = {
    "scholar": 20,
    "manager": 60,
    "admin": 80,
}


@dataclass(frozen=True)
class ActorContext:
    """Identity of the caller, passed explicitly to services that need it."""

    user_id: str
    email: Optional[str]
    role: str
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    @property
    def level(self) -> int:
        return ROLE_LEVELS.get(self.role, 0)

    @property
    def is_admin(self) -> bool:
        return self.level >= ROLE_LEVELS["admin"]

    @property
    def is_manager(self) -> bool:
        return self.level >= ROLE_LEVELS["manager"]


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    pwd_bytes = password.encode("utf-8")
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(pwd_bytes, salt)
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    pwd_bytes = plain_password.encode("utf-8")
    hashed_bytes = hashed_password.encode("utf-8")
    return bcrypt.checkpw(pwd_bytes, hashed_bytes)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.JWT_EXPIRY_MINUTES)
    )
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def create_refresh_token(data: dict) -> str:
    """Create a JWT refresh token."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + timedelta(days=settings.REFRESH_TOKEN_EXPIRY_DAYS)
    # jti keeps two refresh tokens issued in the same second distinct
    to_encode.update({"exp": expire, "type": "refresh", "jti": secrets.token_hex(8)})
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    """Decode and validate a JWT token."""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
        return payload
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )


def _credentials_payload(credentials: Optional[HTTPAuthorizationCredentials]) -> dict:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    payload = decode_token(credentials.credentials)
    if payload.get("sub") is None or payload.get("type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )
    return payload


def actor_from_payload(payload: dict, request: Optional[Request] = None) -> ActorContext:
    ip_address = user_agent = None
    if request is not None:
        ip_address = client_ip(request)
        user_agent = request.headers.get("user-agent")
    return ActorContext(
        user_id=str(payload["sub"]),
        email=payload.get("email"),
        role=payload.get("role", "scholar"),
        ip_address=ip_address,
        user_agent=user_agent,
    )


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
) -> str:
    """Extract user_id from the JWT Bearer token."""
    return str(_credentials_payload(credentials)["sub"])


async def get_current_actor(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
) -> ActorContext:
    """Build the caller's ActorContext from the JWT Bearer token."""
    return actor_from_payload(_credentials_payload(credentials), request)


class RequireRole:
    """Dependency that checks if the user has a required role level."""

    def __init__(self, min_role: str):
        self.min_level = ROLE_LEVELS.get(min_role, 0)

    async def __call__(
        self,
        request: Request,
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
    ) -> ActorContext:
        actor = actor_from_payload(_credentials_payload(credentials), request)
        if actor.level < self.min_level:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role '{actor.role}' insufficient. Requires level {self.min_level}+.",
            )
        return actor


# Convenience dependency factories
require_scholar = RequireRole("scholar")
require_manager = RequireRole("manager")
require_admin = RequireRole("admin")
