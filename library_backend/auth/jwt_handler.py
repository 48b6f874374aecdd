import uuid
from datetime import datetime, timedelta, timezone

import jwt
from pydantic import BaseModel

from library_backend.auth import denylist
from library_backend.core import config

ROLES = ('student', 'librarian')


class TokenError(Exception):
    """Raised when a bearer token cannot be turned into an Identity."""


class TokenExpired(TokenError):
    pass


class TokenMalformed(TokenError):
    pass


class TokenRevoked(TokenError):
    pass


class Identity(BaseModel):
    user_id: int
    role: str
    token_id: str | None = None
    expires_at: datetime | None = None


def create_access_token(user_id: int, role: str, expires_minutes: int | None = None) -> str:
    if role not in ROLES:
        raise ValueError(f'Unknown role: {role}')
    expire_minutes = expires_minutes or config.JWT_EXPIRES_MINUTES
    now = datetime.now(timezone.utc)
    payload = {
        "user": {"id": user_id, "role": role},
        "exp": now + timedelta(minutes=expire_minutes),
        "iat": now,
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(payload, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> Identity:
    try:
        payload = jwt.decode(token, config.JWT_SECRET_KEY, algorithms=[config.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError as exc:
        raise TokenExpired(str(exc)) from exc
    except jwt.InvalidTokenError as exc:
        raise TokenMalformed(str(exc)) from exc

    user = payload.get("user")
    if not isinstance(user, dict) or user.get("role") not in ROLES or not isinstance(user.get("id"), int):
        raise TokenMalformed("Invalid token format")

    token_id = payload.get("jti")
    if token_id and denylist.is_revoked(token_id):
        raise TokenRevoked("Token has been revoked")

    expires_at = payload.get("exp")
    return Identity(
        user_id=user["id"],
        role=user["role"],
        token_id=token_id,
        expires_at=datetime.fromtimestamp(expires_at, tz=timezone.utc) if expires_at else None,
    )


def revoke_identity_token(identity: Identity) -> bool:
    if not identity.token_id or identity.expires_at is None:
        return False
    denylist.revoke(identity.token_id, identity.expires_at)
    return True
