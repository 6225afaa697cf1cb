# backend/otohub/core/security.py
"""
Principal resolution.

A principal is decoded from a signed JWT carried in the ``auth_token`` cookie
or an ``Authorization: Bearer`` header. It is immutable for the life of a
request; when the underlying user record changes a fresh token is signed.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Request

from otohub.core.config import Settings
from otohub.core.constants import Role
from otohub.core.errors import AuthenticationRequired, InvalidToken


@dataclass(frozen=True)
class Principal:
    subject_id: str
    email: str
    role: Role
    tenant_id: Optional[str]
    email_verified: bool = False
    onboarding_completed: bool = False

    @property
    def is_superadmin(self) -> bool:
        return self.role == Role.SUPERADMIN

    @classmethod
    def from_user(cls, user) -> "Principal":
        """Build a principal from a persisted User row."""
        return cls(
            subject_id=str(user.id),
            email=user.email,
            role=Role(user.role),
            tenant_id=user.tenant_id,
            email_verified=bool(user.email_verified),
            onboarding_completed=bool(user.onboarding_completed),
        )


def create_access_token(
    principal: Principal,
    settings: Settings,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Sign a principal into a JWT."""
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    claims = {
        "sub": principal.subject_id,
        "email": principal.email,
        "role": principal.role.value,
        "tenant_id": principal.tenant_id,
        "email_verified": principal.email_verified,
        "onboarding_completed": principal.onboarding_completed,
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(claims, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_principal(token: str, settings: Settings) -> Principal:
    """
    Verify a token and turn its claims into a Principal.

    Raises:
        InvalidToken: expired, tampered or malformed token, or unknown role
    """
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise InvalidToken("Token has expired")
    except jwt.InvalidTokenError:
        raise InvalidToken()

    try:
        role = Role(payload.get("role"))
    except ValueError:
        raise InvalidToken("Token carries an unknown role")

    tenant_id = payload.get("tenant_id") or None
    return Principal(
        subject_id=str(payload["sub"]),
        email=payload.get("email", ""),
        role=role,
        tenant_id=str(tenant_id) if tenant_id is not None else None,
        email_verified=bool(payload.get("email_verified", False)),
        onboarding_completed=bool(payload.get("onboarding_completed", False)),
    )


def extract_credential(request: Request, cookie_name: str) -> str:
    """Return the raw token, preferring the HTTP-only cookie over the bearer header."""
    token = request.cookies.get(cookie_name)
    if token:
        return token

    authorization = request.headers.get("authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()

    raise AuthenticationRequired()
