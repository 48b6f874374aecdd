"""Book purchase request model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from library_backend.database import Base

REQUEST_STATUSES = ('pending', 'approved', 'rejected', 'ordered', 'received')


class BookRequest(Base):
    """A student's request for the library to acquire a book."""
    __tablename__ = "book_requests"

    id = Column(Integer, primary_key=True)
    title = Column(String(255), nullable=False)
    author = Column(String(255))
    isbn = Column(String(20))
    reason = Column(Text)
    additional_notes = Column(Text)
    status = Column(String(20), nullable=False, default='pending')
    requested_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    requested_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)
