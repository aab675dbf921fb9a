"""
Lending records.

``checkouts`` holds the active lending record of a book, at most one per
book (enforced by the unique index on ``book_id``). Returning a book moves
its row into ``returned_checkouts``, which is append-only.
"""

from sqlalchemy import Column, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID

from app.core.database import Base


class Checkout(Base):
    __tablename__ = "checkouts"

    checkout_id = Column(UUID(as_uuid=True), primary_key=True)
    book_id = Column(UUID(as_uuid=True), ForeignKey("books.id"), unique=True, nullable=False)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    checked_out_at = Column(DateTime(timezone=True), nullable=False, index=True)

    def __repr__(self):
        return f"<Checkout(checkout_id='{self.checkout_id}', book_id='{self.book_id}')>"


class ReturnedCheckout(Base):
    __tablename__ = "returned_checkouts"

    checkout_id = Column(UUID(as_uuid=True), primary_key=True)
    book_id = Column(UUID(as_uuid=True), ForeignKey("books.id"), nullable=False, index=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    checked_out_at = Column(DateTime(timezone=True), nullable=False)
    returned_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        CheckConstraint("returned_at >= checked_out_at", name="chk_returned_after_checkout"),
    )

    def __repr__(self):
        return f"<ReturnedCheckout(checkout_id='{self.checkout_id}', returned_at='{self.returned_at}')>"
