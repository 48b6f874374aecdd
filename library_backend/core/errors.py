"""Error taxonomy shared by every route.

Each error is an ``HTTPException`` so FastAPI can raise it from dependencies
and handlers alike; ``main`` registers a handler that renders all of them
with the same envelope::

    {"success": false, "error": "<code>", "message": "<text>", ...}
"""

from typing import Any

from fastapi import HTTPException, status

LOCATION_PREFIXES = {'body', 'query', 'path', 'header', 'cookie'}


class CatalogError(HTTPException):
    """Base class for errors rendered with the JSON error envelope."""

    code = 'error'
    default_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = 'Request failed.'

    def __init__(
        self,
        message: str | None = None,
        *,
        status_code: int | None = None,
        errors: list[dict[str, Any]] | None = None,
        details: Any = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.message = message or self.default_message
        self.errors = errors
        self.details = details
        super().__init__(
            status_code=status_code or self.default_status,
            detail=self.message,
            headers=headers,
        )

    def to_payload(self, include_details: bool = False) -> dict[str, Any]:
        payload: dict[str, Any] = {
            'success': False,
            'error': self.code,
            'message': self.message,
        }
        if self.errors:
            payload['errors'] = self.errors
        if include_details and self.details is not None:
            payload['details'] = self.details
        return payload


class ValidationError(CatalogError):
    code = 'validation_error'
    default_status = status.HTTP_400_BAD_REQUEST
    default_message = 'Validation failed.'

    @classmethod
    def for_field(cls, field: str, message: str) -> 'ValidationError':
        return cls(message, errors=[{'field': field, 'message': message}])

    @classmethod
    def from_error_list(cls, errors: list[dict[str, Any]], message: str | None = None) -> 'ValidationError':
        """Build from the ``errors()`` list of a pydantic or FastAPI validation error."""
        field_errors = []
        for error in errors:
            location = list(error.get('loc', ()))
            if location and location[0] in LOCATION_PREFIXES:
                location = location[1:]
            field_errors.append({
                'field': '.'.join(str(part) for part in location),
                'message': error.get('msg', 'Invalid value'),
            })
        return cls(message, errors=field_errors)


class InvalidCredentials(CatalogError):
    code = 'invalid_credentials'
    default_status = status.HTTP_400_BAD_REQUEST
    default_message = 'Invalid Credentials'


class Unauthenticated(CatalogError):
    code = 'unauthenticated'
    default_status = status.HTTP_401_UNAUTHORIZED
    default_message = 'Authentication required'

    def __init__(self, message: str | None = None, **kwargs: Any) -> None:
        kwargs.setdefault('headers', {'WWW-Authenticate': 'Bearer'})
        super().__init__(message, **kwargs)


class Forbidden(CatalogError):
    code = 'forbidden'
    default_status = status.HTTP_403_FORBIDDEN
    default_message = 'Forbidden: You do not have permission to access this resource'


class NotFound(CatalogError):
    code = 'not_found'
    default_status = status.HTTP_404_NOT_FOUND
    default_message = 'Resource not found.'


class Conflict(CatalogError):
    code = 'conflict'
    default_status = status.HTTP_409_CONFLICT
    default_message = 'Resource already exists.'


class StoreError(CatalogError):
    code = 'store_error'
    default_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = 'Server Error'


DATABASE_UNAVAILABLE_MESSAGE = 'Database unavailable. Verify DATABASE_URL and database credentials.'


def database_unavailable(exc: Exception) -> StoreError:
    return StoreError(
        DATABASE_UNAVAILABLE_MESSAGE,
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        details=str(exc),
    )
