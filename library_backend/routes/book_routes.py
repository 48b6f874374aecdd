import logging
from datetime import date
from itertools import islice

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from library_backend.core.errors import NotFound, ValidationError, database_unavailable
from library_backend.database import get_db
from library_backend.models.book import Book

router = APIRouter(tags=['books'])

logger = logging.getLogger(__name__)

SEARCH_RESULT_LIMIT = 10


class BookResponse(BaseModel):
    id: int
    title: str
    author: str
    isbn: str
    published_date: date | None = None
    description: str | None = None
    cover_image_url: str | None = None
    shelf_number: str | None = None
    row_position: str | None = None

    class Config:
        from_attributes = True


def escape_like(value: str) -> str:
    return value.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')


def _matches_casefolded(book: Book, needle: str) -> bool:
    return any(needle in (value or '').casefold() for value in (book.title, book.author, book.isbn))


def search_books(db: Session, query: str, limit: int = SEARCH_RESULT_LIMIT) -> list[Book]:
    normalized = query.strip()
    if not normalized:
        raise ValidationError.for_field('q', 'Search query is required')

    if db.get_bind().dialect.name == 'sqlite':
        # SQLite's lower() only folds ASCII, so matching happens in Python.
        needle = normalized.casefold()
        return list(islice((book for book in db.query(Book).all() if _matches_casefolded(book, needle)), limit))

    pattern = f'%{escape_like(normalized.lower())}%'
    return db.query(Book).filter(
        or_(
            Book.title.ilike(pattern, escape='\\'),
            Book.author.ilike(pattern, escape='\\'),
            Book.isbn.ilike(pattern, escape='\\'),
        )
    ).limit(limit).all()


def get_book_or_404(db: Session, book_id: int) -> Book:
    book = db.query(Book).filter(Book.id == book_id).first()
    if book is None:
        raise NotFound('Book not found')
    return book


@router.get('', response_model=list[BookResponse])
def list_books(db: Session = Depends(get_db)):
    try:
        return db.query(Book).all()
    except SQLAlchemyError as exc:
        logger.exception('Error fetching books')
        raise database_unavailable(exc) from exc


# Declared before /{book_id} so "search" is not parsed as an id.
@router.get('/search', response_model=list[BookResponse])
def search(q: str | None = Query(default=None), db: Session = Depends(get_db)):
    if q is None:
        raise ValidationError.for_field('q', 'Search query is required')

    try:
        results = search_books(db, q)
    except SQLAlchemyError as exc:
        logger.exception('Search error for query %r', q)
        raise database_unavailable(exc) from exc

    logger.info('Found %d results for query %r', len(results), q)
    return results


@router.get('/{book_id}', response_model=BookResponse)
def get_book(book_id: int, db: Session = Depends(get_db)):
    try:
        return get_book_or_404(db, book_id)
    except SQLAlchemyError as exc:
        logger.exception('Error fetching book %s', book_id)
        raise database_unavailable(exc) from exc
