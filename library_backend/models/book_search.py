"""Search statistics model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String
from library_backend.database import Base


class BookSearch(Base):
    """How often a title has been searched for."""
    __tablename__ = "book_searches"

    id = Column(Integer, primary_key=True)
    title = Column(String(255), unique=True, nullable=False)
    search_count = Column(Integer, nullable=False, default=1)
    last_searched_at = Column(DateTime, nullable=False, default=datetime.now)
    created_at = Column(DateTime, default=datetime.now)
