import logging

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from library_backend.auth import jwt_handler
from library_backend.auth.jwt_handler import Identity
from library_backend.core.errors import Forbidden, Unauthenticated

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def get_current_identity(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> Identity:
    if credentials is None or not credentials.credentials:
        logger.warning('No token provided in request to %s', request.url.path)
        raise Unauthenticated('Access denied. No authentication token provided.')

    try:
        identity = jwt_handler.decode_access_token(credentials.credentials)
    except jwt_handler.TokenExpired as exc:
        logger.warning('Expired token on %s', request.url.path)
        raise Unauthenticated('Session expired. Please log in again.', details=str(exc)) from exc
    except jwt_handler.TokenRevoked as exc:
        logger.warning('Revoked token on %s', request.url.path)
        raise Unauthenticated('Token has been revoked', details=str(exc)) from exc
    except jwt_handler.TokenError as exc:
        logger.warning('Token verification failed on %s: %s', request.url.path, exc)
        raise Unauthenticated('Invalid token', details=str(exc)) from exc

    request.state.identity = identity
    logger.info('Authenticated user: %s (%s)', identity.user_id, identity.role)
    return identity


def require_roles(*roles: str):
    allowed = set(roles)

    def guard(identity: Identity | None = Depends(get_current_identity)) -> Identity:
        if identity is None:
            raise Unauthenticated()
        if allowed and identity.role not in allowed:
            logger.warning('User %s with role %s denied; requires %s', identity.user_id, identity.role, sorted(allowed))
            raise Forbidden()
        return identity

    return guard


require_librarian = require_roles('librarian')
require_student = require_roles('student')
