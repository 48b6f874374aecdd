"""User model definitions."""

from sqlalchemy import Column, Integer, String
from library_backend.database import Base


class User(Base):
    """Represents a student account."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(100), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False, default="")
    role = Column(String(20), nullable=False, default="student")
