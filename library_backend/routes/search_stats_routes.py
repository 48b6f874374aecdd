import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, field_validator
from sqlalchemy import delete, update
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from library_backend.auth.dependencies import require_librarian
from library_backend.auth.jwt_handler import Identity
from library_backend.core.errors import ValidationError, database_unavailable
from library_backend.database import get_db
from library_backend.models.book_search import BookSearch

router = APIRouter(tags=['search-stats'])

logger = logging.getLogger(__name__)

MOST_SEARCHED_LIMIT = 20
MAX_MOST_SEARCHED_LIMIT = 100
MAX_TITLE_LENGTH = 255


class TrackSearchRequest(BaseModel):
    title: str | None = None

    @field_validator('title')
    @classmethod
    def normalize_title(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip()


class TrackSearchResponse(BaseModel):
    success: bool = True
    message: str
    title: str
    search_count: int


class SearchRecordResponse(BaseModel):
    title: str
    search_count: int
    last_searched_at: datetime
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class ClearHistoryResponse(BaseModel):
    success: bool = True
    message: str
    deletedCount: int


def _upsert_statement(dialect_name: str, title: str, now: datetime):
    values = {'title': title, 'search_count': 1, 'last_searched_at': now, 'created_at': now}
    increment = {'search_count': BookSearch.search_count + 1, 'last_searched_at': now}

    if dialect_name == 'postgresql':
        return postgresql.insert(BookSearch).values(**values).on_conflict_do_update(
            index_elements=[BookSearch.title],
            set_=increment,
        )
    if dialect_name == 'sqlite':
        return sqlite.insert(BookSearch).values(**values).on_conflict_do_update(
            index_elements=[BookSearch.title],
            set_=increment,
        )
    if dialect_name in {'mysql', 'mariadb'}:
        return mysql.insert(BookSearch).values(**values).on_duplicate_key_update(**increment)
    return None


def track_search(db: Session, title: str | None, now: datetime | None = None) -> BookSearch:
    """Count one search for ``title``.

    The first search inserts the record with a count of one; later searches
    increment it in the same statement, so concurrent callers cannot lose an
    increment.
    """
    clean_title = (title or '').strip()
    if not clean_title:
        raise ValidationError.for_field('title', 'Book title is required')
    if len(clean_title) > MAX_TITLE_LENGTH:
        raise ValidationError.for_field('title', f'Title must be {MAX_TITLE_LENGTH} characters or fewer.')

    searched_at = now or datetime.now()
    statement = _upsert_statement(db.get_bind().dialect.name, clean_title, searched_at)

    if statement is not None:
        db.execute(statement)
    else:
        updated = db.execute(
            update(BookSearch)
            .where(BookSearch.title == clean_title)
            .values(search_count=BookSearch.search_count + 1, last_searched_at=searched_at)
        )
        if updated.rowcount == 0:
            db.add(BookSearch(title=clean_title, search_count=1, last_searched_at=searched_at, created_at=searched_at))
            try:
                db.flush()
            except IntegrityError:
                # Another request inserted the title first.
                db.rollback()
                db.execute(
                    update(BookSearch)
                    .where(BookSearch.title == clean_title)
                    .values(search_count=BookSearch.search_count + 1, last_searched_at=searched_at)
                )
    db.commit()

    return db.query(BookSearch).filter(BookSearch.title == clean_title).one()


def get_most_searched(db: Session, limit: int = MOST_SEARCHED_LIMIT) -> list[BookSearch]:
    return db.query(BookSearch).order_by(
        BookSearch.search_count.desc(),
        BookSearch.last_searched_at.desc(),
    ).limit(limit).all()


def clear_search_history(db: Session) -> int:
    result = db.execute(delete(BookSearch))
    db.commit()
    return result.rowcount or 0


@router.post('/track-search', response_model=TrackSearchResponse)
def track_search_route(data: TrackSearchRequest, db: Session = Depends(get_db)):
    try:
        record = track_search(db, data.title)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Error tracking search for %r', data.title)
        raise database_unavailable(exc) from exc

    return TrackSearchResponse(
        message='Search tracked successfully',
        title=record.title,
        search_count=record.search_count,
    )


@router.get('/most-searched', response_model=list[SearchRecordResponse])
def most_searched(
    limit: int = Query(default=MOST_SEARCHED_LIMIT, ge=1, le=MAX_MOST_SEARCHED_LIMIT),
    db: Session = Depends(get_db),
):
    try:
        return get_most_searched(db, limit)
    except SQLAlchemyError as exc:
        logger.exception('Error fetching search statistics')
        raise database_unavailable(exc) from exc


@router.delete('/clear-history', response_model=ClearHistoryResponse)
def clear_history(
    identity: Identity = Depends(require_librarian),
    db: Session = Depends(get_db),
):
    try:
        deleted_count = clear_search_history(db)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Error clearing search history')
        raise database_unavailable(exc) from exc

    logger.info('Librarian %s cleared %d search records', identity.user_id, deleted_count)
    return ClearHistoryResponse(message='Search history cleared successfully', deletedCount=deleted_count)
