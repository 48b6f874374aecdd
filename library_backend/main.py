import logging
import os
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from library_backend.core import config
from library_backend.core.errors import CatalogError, StoreError, ValidationError
from library_backend.database import Base, engine, ensure_catalog_schema
from library_backend.models import book, book_request, book_search, librarian, user  # noqa: F401
from library_backend.routes import (
    auth_routes,
    book_request_routes,
    book_routes,
    librarian_routes,
    search_stats_routes,
    student_routes,
)

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)
logger = logging.getLogger(__name__)

app = FastAPI(title='Library Catalog API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.FRONTEND_ORIGINS,
    allow_credentials=True,
    allow_methods=['GET', 'POST', 'PUT', 'PATCH', 'DELETE', 'OPTIONS'],
    allow_headers=['Content-Type', 'Authorization', 'X-Requested-With', 'Accept'],
    expose_headers=['Authorization'],
)

os.makedirs(config.UPLOAD_DIR, exist_ok=True)
app.mount(config.UPLOAD_URL_PREFIX, StaticFiles(directory=config.UPLOAD_DIR), name='uploads')


def error_response(exc: CatalogError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_payload(include_details=config.is_development()),
        headers=exc.headers,
    )


@app.exception_handler(CatalogError)
async def catalog_error_handler(request: Request, exc: CatalogError) -> JSONResponse:
    return error_response(exc)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(ValidationError.from_error_list(exc.errors()))


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={'success': False, 'error': 'http_error', 'message': exc.detail},
        headers=getattr(exc, 'headers', None),
    )


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception('Unhandled database error on %s %s', request.method, request.url.path)
    return error_response(StoreError(details=str(exc)))


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception('Unhandled error on %s %s', request.method, request.url.path)
    return error_response(StoreError(details=repr(exc)))


@app.on_event('startup')
def initialize_database() -> None:
    config.validate_runtime_config()
    try:
        Base.metadata.create_all(bind=engine)
        ensure_catalog_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.get('/')
def root():
    return {'status': 'Library Catalog API Running'}


@app.get('/health')
def health():
    return {'status': 'ok', 'timestamp': datetime.now(timezone.utc).isoformat()}


app.include_router(auth_routes.router, prefix='/auth')
app.include_router(librarian_routes.router, prefix='/librarian')
app.include_router(student_routes.router, prefix='/student')
app.include_router(book_routes.router, prefix='/books')
app.include_router(book_request_routes.router, prefix='/book-requests')
app.include_router(search_stats_routes.router, prefix='/search-stats')
