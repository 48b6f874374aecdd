import logging
from datetime import date

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status
from pydantic import BaseModel, ValidationError as PydanticValidationError, field_validator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from library_backend.auth.accounts import LoginRequest, LoginResponse, authenticate, login_response
from library_backend.auth.dependencies import require_librarian
from library_backend.auth.jwt_handler import Identity
from library_backend.core import uploads
from library_backend.core.errors import Conflict, NotFound, ValidationError, database_unavailable
from library_backend.database import get_db
from library_backend.models.book import Book
from library_backend.models.librarian import Librarian
from library_backend.routes.book_routes import BookResponse, get_book_or_404

router = APIRouter(tags=['librarian'])

logger = logging.getLogger(__name__)

REQUIRED_BOOK_FIELDS = ('title', 'author', 'isbn')
DUPLICATE_ISBN_MESSAGE = 'A book with this ISBN already exists'


class BookForm(BaseModel):
    title: str
    author: str
    isbn: str
    published_date: date | None = None
    description: str | None = None
    shelf_number: str | None = None
    row_position: str | None = None

    @field_validator('title', 'author', 'isbn', mode='before')
    @classmethod
    def validate_required_text(cls, value):
        if value is None or not str(value).strip():
            raise ValueError('This field is required.')
        return str(value).strip()

    @field_validator('published_date', 'description', 'shelf_number', 'row_position', mode='before')
    @classmethod
    def blank_to_none(cls, value):
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value


class BookMutationResponse(BaseModel):
    success: bool = True
    message: str
    book: BookResponse


class MessageResponse(BaseModel):
    success: bool = True
    message: str


def parse_book_form(**fields) -> BookForm:
    try:
        return BookForm(**fields)
    except PydanticValidationError as exc:
        field_errors = exc.errors()
        missing_required = any(error['loc'] and error['loc'][0] in REQUIRED_BOOK_FIELDS for error in field_errors)
        message = 'Title, author, and ISBN are required fields' if missing_required else None
        raise ValidationError.from_error_list(field_errors, message=message) from exc


def read_optional_cover(cover_image: UploadFile | None) -> uploads.CoverImage | None:
    if not uploads.has_upload(cover_image):
        return None
    return uploads.read_cover_image(cover_image)


async def cover_clear_requested(request: Request) -> bool:
    # Form() maps an empty string to the default, so the clear signal is read
    # from the raw form: cover_image_url sent as "" with no new file.
    form = await request.form()
    return form.get('cover_image_url') == ''


def isbn_taken(db: Session, isbn: str, exclude_id: int | None = None) -> bool:
    query = db.query(Book.id).filter(Book.isbn == isbn)
    if exclude_id is not None:
        query = query.filter(Book.id != exclude_id)
    return query.first() is not None


@router.post('/login', response_model=LoginResponse)
def login(data: LoginRequest, db: Session = Depends(get_db)):
    librarian = authenticate(db, Librarian, data.username, data.password)
    logger.info('Librarian %s logged in', librarian.id)
    return login_response(librarian, role='librarian')


@router.get('/books', response_model=list[BookResponse])
def list_books(
    identity: Identity = Depends(require_librarian),
    db: Session = Depends(get_db),
):
    try:
        return db.query(Book).all()
    except SQLAlchemyError as exc:
        logger.exception('Error fetching books')
        raise database_unavailable(exc) from exc


@router.post('/books', response_model=BookMutationResponse, status_code=status.HTTP_201_CREATED)
def create_book(
    title: str | None = Form(default=None),
    author: str | None = Form(default=None),
    isbn: str | None = Form(default=None),
    published_date: str | None = Form(default=None),
    description: str | None = Form(default=None),
    shelf_number: str | None = Form(default=None),
    row_position: str | None = Form(default=None),
    cover_image: UploadFile | None = File(default=None, alias='coverImage'),
    identity: Identity = Depends(require_librarian),
    db: Session = Depends(get_db),
):
    form = parse_book_form(
        title=title,
        author=author,
        isbn=isbn,
        published_date=published_date,
        description=description,
        shelf_number=shelf_number,
        row_position=row_position,
    )
    cover = read_optional_cover(cover_image)

    stored_cover = None
    try:
        if isbn_taken(db, form.isbn):
            raise Conflict(DUPLICATE_ISBN_MESSAGE)

        if cover is not None:
            stored_cover = uploads.save_cover_image(cover)

        book = Book(
            **form.model_dump(),
            cover_image_url=stored_cover.url if stored_cover else None,
        )
        db.add(book)
        db.commit()
        db.refresh(book)
    except Conflict:
        uploads.discard_cover_image(stored_cover)
        raise
    except IntegrityError as exc:
        db.rollback()
        uploads.discard_cover_image(stored_cover)
        raise Conflict(DUPLICATE_ISBN_MESSAGE) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        uploads.discard_cover_image(stored_cover)
        logger.exception('Error adding book with ISBN %s', form.isbn)
        raise database_unavailable(exc) from exc

    logger.info('Librarian %s added book %s', identity.user_id, book.id)
    return BookMutationResponse(message='Book added successfully', book=BookResponse.model_validate(book))


@router.put('/books/{book_id}', response_model=BookMutationResponse)
def update_book(
    book_id: int,
    title: str | None = Form(default=None),
    author: str | None = Form(default=None),
    isbn: str | None = Form(default=None),
    published_date: str | None = Form(default=None),
    description: str | None = Form(default=None),
    shelf_number: str | None = Form(default=None),
    row_position: str | None = Form(default=None),
    cover_image: UploadFile | None = File(default=None, alias='coverImage'),
    clear_cover: bool = Depends(cover_clear_requested),
    identity: Identity = Depends(require_librarian),
    db: Session = Depends(get_db),
):
    form = parse_book_form(
        title=title,
        author=author,
        isbn=isbn,
        published_date=published_date,
        description=description,
        shelf_number=shelf_number,
        row_position=row_position,
    )
    cover = read_optional_cover(cover_image)

    stored_cover = None
    try:
        book = get_book_or_404(db, book_id)

        if isbn_taken(db, form.isbn, exclude_id=book_id):
            raise Conflict('A book with this ISBN already exists.')

        if cover is not None:
            stored_cover = uploads.save_cover_image(cover)
            book.cover_image_url = stored_cover.url
        elif clear_cover:
            book.cover_image_url = None

        for field, value in form.model_dump().items():
            setattr(book, field, value)

        db.commit()
        db.refresh(book)
    except (NotFound, Conflict):
        uploads.discard_cover_image(stored_cover)
        raise
    except IntegrityError as exc:
        db.rollback()
        uploads.discard_cover_image(stored_cover)
        raise Conflict('A book with this ISBN already exists.') from exc
    except SQLAlchemyError as exc:
        db.rollback()
        uploads.discard_cover_image(stored_cover)
        logger.exception('Error updating book %s', book_id)
        raise database_unavailable(exc) from exc

    logger.info('Librarian %s updated book %s', identity.user_id, book_id)
    return BookMutationResponse(message='Book updated successfully', book=BookResponse.model_validate(book))


@router.delete('/books/{book_id}', response_model=MessageResponse)
def delete_book(
    book_id: int,
    identity: Identity = Depends(require_librarian),
    db: Session = Depends(get_db),
):
    try:
        book = get_book_or_404(db, book_id)
        # The stored cover file is left in place.
        db.delete(book)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Error deleting book %s', book_id)
        raise database_unavailable(exc) from exc

    logger.info('Librarian %s deleted book %s', identity.user_id, book_id)
    return MessageResponse(message='Book deleted successfully')
