import logging
from datetime import datetime

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from library_backend.auth.dependencies import require_librarian, require_student
from library_backend.auth.jwt_handler import Identity
from library_backend.core.errors import NotFound, ValidationError, database_unavailable
from library_backend.database import get_db
from library_backend.models.book_request import REQUEST_STATUSES, BookRequest
from library_backend.models.user import User

router = APIRouter(tags=['book-requests'])

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 255
MAX_ISBN_LENGTH = 20


class CreateBookRequest(BaseModel):
    title: str | None = None
    author: str | None = None
    isbn: str | None = None
    reason: str | None = None
    additional_notes: str | None = Field(default=None, alias='additionalNotes')

    class Config:
        populate_by_name = True

    @field_validator('title', 'author', 'isbn', 'reason', 'additional_notes')
    @classmethod
    def strip_blank(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip()
        return normalized or None

    @field_validator('title')
    @classmethod
    def validate_title_length(cls, value: str | None) -> str | None:
        if value is not None and len(value) > MAX_TITLE_LENGTH:
            raise ValueError(f'Title must be {MAX_TITLE_LENGTH} characters or fewer.')
        return value

    @field_validator('isbn')
    @classmethod
    def validate_isbn_length(cls, value: str | None) -> str | None:
        if value is not None and len(value) > MAX_ISBN_LENGTH:
            raise ValueError(f'ISBN must be {MAX_ISBN_LENGTH} characters or fewer.')
        return value


class UpdateStatusRequest(BaseModel):
    status: str | None = None


class BookRequestResponse(BaseModel):
    id: int
    title: str
    author: str | None = None
    isbn: str | None = None
    reason: str | None = None
    additional_notes: str | None = None
    status: str
    requested_by: int | None = None
    requested_at: datetime
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class BookRequestListItem(BookRequestResponse):
    requested_by_username: str | None = None


class BookRequestCreatedResponse(BaseModel):
    success: bool = True
    message: str
    data: BookRequestResponse


class BookRequestListResponse(BaseModel):
    success: bool = True
    data: list[BookRequestListItem]


class StatusUpdatedResponse(BaseModel):
    success: bool = True
    message: str
    data: BookRequestResponse


def submit_book_request(db: Session, data: CreateBookRequest, user_id: int | None) -> BookRequest:
    if not data.title:
        raise ValidationError('Validation failed', errors=[{'field': 'title', 'message': 'Book title is required'}])

    book_request = BookRequest(
        title=data.title,
        author=data.author,
        isbn=data.isbn,
        reason=data.reason,
        additional_notes=data.additional_notes,
        requested_by=user_id,
        status='pending',
    )
    db.add(book_request)
    db.commit()
    db.refresh(book_request)
    return book_request


def list_book_requests(db: Session) -> list[BookRequestListItem]:
    # Outer join: requests outlive the user that made them.
    rows = db.query(BookRequest, User.username).outerjoin(
        User, BookRequest.requested_by == User.id
    ).order_by(BookRequest.requested_at.desc(), BookRequest.id.desc()).all()

    return [
        BookRequestListItem(
            **BookRequestResponse.model_validate(book_request).model_dump(),
            requested_by_username=username,
        )
        for book_request, username in rows
    ]


def update_book_request_status(db: Session, request_id: int, new_status: str | None) -> BookRequest:
    # Any status may follow any other; only the value itself is checked.
    if new_status not in REQUEST_STATUSES:
        raise ValidationError('Validation failed', errors=[{'field': 'status', 'message': 'Invalid status'}])

    book_request = db.query(BookRequest).filter(BookRequest.id == request_id).first()
    if book_request is None:
        raise NotFound('Book request not found')

    book_request.status = new_status
    book_request.updated_at = datetime.now()
    db.commit()
    db.refresh(book_request)
    return book_request


@router.get('', response_model=BookRequestListResponse)
def list_requests(
    identity: Identity = Depends(require_librarian),
    db: Session = Depends(get_db),
):
    try:
        return BookRequestListResponse(data=list_book_requests(db))
    except SQLAlchemyError as exc:
        logger.exception('Error fetching book requests')
        raise database_unavailable(exc) from exc


@router.post('', response_model=BookRequestCreatedResponse, status_code=status.HTTP_201_CREATED)
def submit_request(
    data: CreateBookRequest,
    identity: Identity = Depends(require_student),
    db: Session = Depends(get_db),
):
    try:
        book_request = submit_book_request(db, data, identity.user_id)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Error submitting book purchase request')
        raise database_unavailable(exc) from exc

    logger.info('Student %s requested %r', identity.user_id, book_request.title)
    return BookRequestCreatedResponse(
        message='Book purchase request submitted successfully',
        data=BookRequestResponse.model_validate(book_request),
    )


@router.patch('/{request_id}/status', response_model=StatusUpdatedResponse)
def update_request_status(
    request_id: int,
    data: UpdateStatusRequest,
    identity: Identity = Depends(require_librarian),
    db: Session = Depends(get_db),
):
    try:
        book_request = update_book_request_status(db, request_id, data.status)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Error updating status of book request %s', request_id)
        raise database_unavailable(exc) from exc

    logger.info('Librarian %s set request %s to %s', identity.user_id, request_id, book_request.status)
    return StatusUpdatedResponse(
        message='Request status updated successfully',
        data=BookRequestResponse.model_validate(book_request),
    )
