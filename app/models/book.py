"""
Book model for the lending catalog.

A book row is referenced by at most one active checkout and by any number
of returned checkouts.
"""

from sqlalchemy import Column, String, Text, DateTime, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from app.core.database import Base


class Book(Base):
    """A physical book owned by a user and lent to borrowers."""
    __tablename__ = "books"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    author = Column(String(255), nullable=False)
    isbn = Column(String(32), nullable=False)
    description = Column(Text, nullable=False, default="")
    owned_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)

    # Metadata
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    owner = relationship("User", back_populates="books")

    def __repr__(self):
        return f"<Book(title='{self.title}', isbn='{self.isbn}')>"
