from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import jwt
from passlib.hash import pbkdf2_sha256

from storefront.core.errors import TokenExpired, TokenInvalid
from storefront.core.settings import settings

ALGORITHM = "HS256"
REQUIRED_CLAIMS = ("sub", "tenant_id", "role_id", "exp")

_SECRET_CACHE: str | None = None


def hash_password(plain: str) -> str:
    return pbkdf2_sha256.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    if not hashed:
        return False
    try:
        return pbkdf2_sha256.verify(plain, hashed)
    except ValueError:
        # malformed hash in storage
        return False


def _secret() -> str:
    global _SECRET_CACHE
    if _SECRET_CACHE:
        return _SECRET_CACHE

    sec = str(getattr(settings, "AUTH_JWT_SECRET", "") or "").strip()
    if not sec:
        if getattr(settings, "ENV", "lab") == "prod":
            raise RuntimeError("SECURITY: AUTH_JWT_SECRET is required when ENV=prod")
        # lab: one random secret per process, tokens die with the process
        sec = secrets.token_urlsafe(48)

    _SECRET_CACHE = sec
    return sec


def create_access_token(
    user_id: int,
    tenant_id: int,
    role_id: int,
    email: str,
    ttl_minutes: int | None = None,
) -> str:
    """Sign a session token. It carries identity only, never permissions."""
    ttl = int(ttl_minutes if ttl_minutes is not None else settings.AUTH_JWT_EXPIRE_MINUTES)
    now = datetime.now(timezone.utc)
    payload: Dict[str, Any] = {
        "sub": str(user_id),
        "tenant_id": str(tenant_id),
        "role_id": str(role_id),
        "email": email,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=ttl)).timestamp()),
    }
    return jwt.encode(payload, _secret(), algorithm=ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    try:
        claims = jwt.decode(
            token,
            _secret(),
            algorithms=[ALGORITHM],
            options={"require": list(REQUIRED_CLAIMS)},
        )
    except jwt.ExpiredSignatureError:
        raise TokenExpired()
    except jwt.PyJWTError:
        raise TokenInvalid()

    for key in ("sub", "tenant_id", "role_id"):
        if not str(claims.get(key) or "").isdigit():
            raise TokenInvalid()
    return claims


def bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None
