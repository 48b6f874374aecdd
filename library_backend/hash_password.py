"""Hash a password for a librarian account, optionally storing the account.

Usage:
    python -m library_backend.hash_password PASSWORD
    python -m library_backend.hash_password PASSWORD --create-librarian USERNAME
"""
import argparse
import sys

from sqlalchemy.exc import IntegrityError

from library_backend.auth.passwords import hash_password
from library_backend.database import Base, SessionLocal, engine
from library_backend.models.librarian import Librarian


def create_librarian(username: str, hashed_password: str) -> int:
    Base.metadata.create_all(bind=engine, tables=[Librarian.__table__])
    db = SessionLocal()
    try:
        librarian = Librarian(username=username, hashed_password=hashed_password)
        db.add(librarian)
        db.commit()
        db.refresh(librarian)
        return librarian.id
    finally:
        db.close()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("password")
    parser.add_argument("--create-librarian", metavar="USERNAME")
    args = parser.parse_args(argv)

    if not args.password:
        print("Password must not be empty.", file=sys.stderr)
        return 1

    hashed = hash_password(args.password)
    print(hashed)

    if args.create_librarian:
        try:
            librarian_id = create_librarian(args.create_librarian, hashed)
        except IntegrityError:
            print(f"Librarian {args.create_librarian!r} already exists.", file=sys.stderr)
            return 1
        print(f"Created librarian {args.create_librarian!r} with id {librarian_id}.", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
