import os
import tempfile

os.environ.setdefault('DATABASE_URL', 'sqlite://')
os.environ.setdefault('JWT_SECRET_KEY', 'test-secret')
os.environ.setdefault('APP_ENV', 'test')
os.environ.setdefault('UPLOAD_DIR', tempfile.mkdtemp(prefix='library-uploads-'))

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from library_backend.auth import denylist, jwt_handler  # noqa: E402
from library_backend.auth.passwords import hash_password  # noqa: E402
from library_backend.core import config  # noqa: E402
from library_backend.database import Base, get_db  # noqa: E402
from library_backend.main import app  # noqa: E402
from library_backend.models.librarian import Librarian  # noqa: E402
from library_backend.models.user import User  # noqa: E402

# Cheap hashes keep the suite fast; verification is cost-independent.
TEST_BCRYPT_ROUNDS = 4


@pytest.fixture(autouse=True)
def reset_denylist():
    denylist.clear()
    yield
    denylist.clear()


@pytest.fixture
def db_engine():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    directory = tmp_path / 'uploads'
    monkeypatch.setattr(config, 'UPLOAD_DIR', str(directory))
    return directory


@pytest.fixture
def client(session_factory, upload_dir):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def librarian(db_session) -> Librarian:
    account = Librarian(username='librarian', hashed_password=hash_password('librarian123', rounds=TEST_BCRYPT_ROUNDS))
    db_session.add(account)
    db_session.commit()
    db_session.refresh(account)
    return account


@pytest.fixture
def student(db_session) -> User:
    account = User(username='alice', hashed_password=hash_password('student123', rounds=TEST_BCRYPT_ROUNDS), role='student')
    db_session.add(account)
    db_session.commit()
    db_session.refresh(account)
    return account


def bearer(user_id: int, role: str) -> dict[str, str]:
    return {'Authorization': f'Bearer {jwt_handler.create_access_token(user_id=user_id, role=role)}'}


@pytest.fixture
def librarian_headers(librarian) -> dict[str, str]:
    return bearer(librarian.id, 'librarian')


@pytest.fixture
def student_headers(student) -> dict[str, str]:
    return bearer(student.id, 'student')


@pytest.fixture
def auth_headers():
    return bearer
