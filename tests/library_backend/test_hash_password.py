import pytest

from library_backend import hash_password as hash_password_cli
from library_backend.auth.passwords import verify_password
from library_backend.models.librarian import Librarian


@pytest.fixture
def cli_database(db_engine, session_factory, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(hash_password_cli, 'engine', db_engine)
    monkeypatch.setattr(hash_password_cli, 'SessionLocal', session_factory)
    return session_factory


def test_main_prints_a_verifiable_hash(capsys) -> None:
    assert hash_password_cli.main(['librarian123']) == 0

    printed = capsys.readouterr().out.strip()
    assert verify_password('librarian123', printed)


def test_main_creates_librarian_account(cli_database, capsys) -> None:
    assert hash_password_cli.main(['librarian123', '--create-librarian', 'head-librarian']) == 0

    db = cli_database()
    try:
        librarian = db.query(Librarian).filter(Librarian.username == 'head-librarian').one()
    finally:
        db.close()
    assert verify_password('librarian123', librarian.hashed_password)
    assert 'Created librarian' in capsys.readouterr().err


def test_main_refuses_duplicate_librarian(cli_database, capsys) -> None:
    hash_password_cli.main(['first', '--create-librarian', 'head-librarian'])

    assert hash_password_cli.main(['second', '--create-librarian', 'head-librarian']) == 1
    assert 'already exists' in capsys.readouterr().err


def test_main_rejects_empty_password(capsys) -> None:
    assert hash_password_cli.main(['']) == 1
