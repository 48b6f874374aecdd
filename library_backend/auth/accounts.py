import logging

from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from library_backend.auth import jwt_handler
from library_backend.auth.passwords import verify_password
from library_backend.core.errors import InvalidCredentials, database_unavailable

logger = logging.getLogger(__name__)


class LoginRequest(BaseModel):
    username: str
    password: str

    @field_validator('username', 'password')
    @classmethod
    def validate_required(cls, value: str) -> str:
        # Usernames match exactly, so the value is checked but not trimmed.
        if not value.strip():
            raise ValueError('Username and password are required')
        return value


class AccountSummary(BaseModel):
    id: int
    username: str


class LoginResponse(BaseModel):
    token: str
    role: str
    user: AccountSummary


def authenticate(db: Session, model, username: str, password: str):
    """Return the account matching the credentials or raise InvalidCredentials.

    Unknown usernames and wrong passwords produce the same error; only the log
    tells them apart.
    """
    try:
        account = db.query(model).filter(model.username == username).first()
    except SQLAlchemyError as exc:
        logger.exception('Login lookup failed for %s', model.__tablename__)
        raise database_unavailable(exc) from exc

    if account is None:
        logger.info('Login failed: no %s account named %r', model.__tablename__, username)
        raise InvalidCredentials()

    if not verify_password(password, account.hashed_password):
        logger.info('Login failed: wrong password for %s account %r', model.__tablename__, username)
        raise InvalidCredentials()

    return account


def login_response(account, role: str) -> LoginResponse:
    token = jwt_handler.create_access_token(user_id=account.id, role=role)
    return LoginResponse(
        token=token,
        role=role,
        user=AccountSummary(id=account.id, username=account.username),
    )
