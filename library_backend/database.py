from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from library_backend.core import config


def build_engine(database_url: str):
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(database_url, echo=config.DATABASE_ECHO, connect_args=connect_args)


engine = build_engine(config.DATABASE_URL)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_catalog_schema_checked = False

# Columns added to tables after their first release. Existing deployments get
# them through ensure_catalog_schema(); fresh ones through create_all().
CATALOG_MIGRATIONS = {
    'books': [
        ('published_date', 'ALTER TABLE books ADD COLUMN published_date DATE'),
        ('description', 'ALTER TABLE books ADD COLUMN description TEXT'),
        ('cover_image_url', 'ALTER TABLE books ADD COLUMN cover_image_url VARCHAR(255)'),
        ('shelf_number', 'ALTER TABLE books ADD COLUMN shelf_number VARCHAR(50)'),
        ('row_position', 'ALTER TABLE books ADD COLUMN row_position VARCHAR(50)'),
    ],
    'book_requests': [
        ('additional_notes', 'ALTER TABLE book_requests ADD COLUMN additional_notes TEXT'),
        ('updated_at', 'ALTER TABLE book_requests ADD COLUMN updated_at TIMESTAMP'),
    ],
    'book_searches': [
        ('created_at', 'ALTER TABLE book_searches ADD COLUMN created_at TIMESTAMP'),
    ],
}

CATALOG_INDEXES = [
    'CREATE INDEX IF NOT EXISTS idx_book_searches_ranking ON book_searches(search_count, last_searched_at)',
    'CREATE INDEX IF NOT EXISTS idx_book_requests_requested_at ON book_requests(requested_at)',
]


def ensure_catalog_schema(bind=None) -> None:
    global _catalog_schema_checked

    if _catalog_schema_checked and bind is None:
        return

    target = bind if bind is not None else engine

    with _schema_lock:
        if _catalog_schema_checked and bind is None:
            return

        inspector = inspect(target)
        table_names = set(inspector.get_table_names())

        with target.begin() as connection:
            for table_name, migration_steps in CATALOG_MIGRATIONS.items():
                if table_name not in table_names:
                    continue
                existing_columns = {column['name'] for column in inspector.get_columns(table_name)}
                for column_name, statement in migration_steps:
                    if column_name not in existing_columns:
                        connection.execute(text(statement))

            # MySQL has no CREATE INDEX IF NOT EXISTS.
            if target.dialect.name != 'mysql' and {'book_searches', 'book_requests'} <= table_names:
                for statement in CATALOG_INDEXES:
                    connection.execute(text(statement))

        if bind is None:
            _catalog_schema_checked = True


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
