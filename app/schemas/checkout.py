"""
Pydantic schemas for checkouts.

The first group maps store rows into the types the lending engines work
with; the second group is the HTTP response shape.
"""

from pydantic import BaseModel, field_validator
from pydantic.alias_generators import to_camel
from typing import Optional, List
from datetime import datetime
from uuid import UUID

from app.utils.clock import as_utc


class CheckoutState(BaseModel):
    """
    A book's lending state as seen inside a write transaction.

    Produced by a left outer join of the book against the active checkouts;
    the checkout fields are None when the book is available.
    """
    book_id: UUID
    checkout_id: Optional[UUID] = None
    user_id: Optional[UUID] = None
    checked_out_at: Optional[datetime] = None

    @field_validator("checked_out_at")
    @classmethod
    def _normalize_timestamp(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v) if v is not None else None

    @property
    def is_checked_out(self) -> bool:
        return self.checkout_id is not None

    def matches(self, checkout_id: UUID, user_id: UUID) -> bool:
        """True only if an active checkout exists and both ids equal it."""
        return self.is_checked_out and (self.checkout_id, self.user_id) == (checkout_id, user_id)


class CheckoutBook(BaseModel):
    id: UUID
    title: str
    author: str
    isbn: str

    class Config:
        from_attributes = True
        frozen = True


class CheckoutRecord(BaseModel):
    """An active (returned_at is None) or returned lending record."""
    id: UUID
    checked_out_by: UUID
    checked_out_at: datetime
    returned_at: Optional[datetime] = None
    book: CheckoutBook

    class Config:
        from_attributes = True
        frozen = True

    @field_validator("checked_out_at", "returned_at")
    @classmethod
    def _normalize_timestamps(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v) if v is not None else None

    @property
    def is_returned(self) -> bool:
        return self.returned_at is not None


class BookOwner(BaseModel):
    id: UUID
    name: str

    class Config:
        frozen = True


class BookCheckout(BaseModel):
    """The active checkout of a book, seen from the book."""
    id: UUID
    checked_out_by: UUID
    checked_out_at: datetime

    class Config:
        frozen = True

    @field_validator("checked_out_at")
    @classmethod
    def _normalize_timestamp(cls, v: datetime) -> datetime:
        return as_utc(v)


class BookStatus(BaseModel):
    """A book with its current checkout; ``checkout`` is None when the book is available."""
    id: UUID
    title: str
    author: str
    isbn: str
    description: str
    owner: BookOwner
    checkout: Optional[BookCheckout] = None

    class Config:
        frozen = True

    @property
    def is_available(self) -> bool:
        return self.checkout is None


class CreateCheckout(BaseModel):
    """Request to lend a book."""
    book_id: UUID
    checked_out_by: UUID
    checked_out_at: datetime

    @field_validator("checked_out_at")
    @classmethod
    def _normalize_timestamp(cls, v: datetime) -> datetime:
        return as_utc(v)


class UpdateReturned(BaseModel):
    """Request to return a lent book."""
    checkout_id: UUID
    book_id: UUID
    returned_by: UUID
    returned_at: datetime

    @field_validator("returned_at")
    @classmethod
    def _normalize_timestamp(cls, v: datetime) -> datetime:
        return as_utc(v)


# ========== Response Schemas ==========

class CheckoutBookResponse(BaseModel):
    id: UUID
    title: str
    author: str
    isbn: str

    class Config:
        from_attributes = True
        alias_generator = to_camel
        populate_by_name = True


class CheckoutResponse(BaseModel):
    id: UUID
    checked_out_by: UUID
    checked_out_at: datetime
    returned_at: Optional[datetime] = None
    book: CheckoutBookResponse

    class Config:
        from_attributes = True
        alias_generator = to_camel
        populate_by_name = True


class CheckoutsResponse(BaseModel):
    items: List[CheckoutResponse]

    @classmethod
    def from_records(cls, records: List[CheckoutRecord]) -> "CheckoutsResponse":
        return cls(items=[CheckoutResponse.model_validate(r) for r in records])


class BookOwnerResponse(BaseModel):
    id: UUID
    name: str

    class Config:
        from_attributes = True
        alias_generator = to_camel
        populate_by_name = True


class BookCheckoutResponse(BaseModel):
    id: UUID
    checked_out_by: UUID
    checked_out_at: datetime

    class Config:
        from_attributes = True
        alias_generator = to_camel
        populate_by_name = True


class BookResponse(BaseModel):
    id: UUID
    title: str
    author: str
    isbn: str
    description: str
    owner: BookOwnerResponse
    checkout: Optional[BookCheckoutResponse] = None

    class Config:
        from_attributes = True
        alias_generator = to_camel
        populate_by_name = True


class CheckoutCreatedResponse(BaseModel):
    checkout_id: UUID

    class Config:
        alias_generator = to_camel
        populate_by_name = True
