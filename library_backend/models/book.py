"""Book model definitions."""

from sqlalchemy import Column, Date, Integer, String, Text
from library_backend.database import Base


class Book(Base):
    """A catalog entry and where it sits on the shelves."""
    __tablename__ = "books"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    author = Column(String(255), nullable=False)
    isbn = Column(String(20), unique=True, index=True, nullable=False)
    published_date = Column(Date)
    description = Column(Text)
    cover_image_url = Column(String(255))
    shelf_number = Column(String(50))
    row_position = Column(String(50))
