"""Librarian credential model definitions."""

from sqlalchemy import Column, Integer, String
from library_backend.database import Base


class Librarian(Base):
    """Librarian account, provisioned out of band with a bcrypt hash."""
    __tablename__ = "librarians"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(100), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
