"""
Capability interfaces the lending engines depend on.

The engines only ever see these protocols. ``SqlCheckoutStore`` and
``SqlQueryStore`` bind them to the relational store; tests bind them to an
in-memory double.
"""

from datetime import datetime
from typing import AsyncContextManager, List, Optional, Protocol
from uuid import UUID

from app.schemas.checkout import BookStatus, CheckoutRecord, CheckoutState


class CheckoutTransaction(Protocol):
    """Statements available inside one write transaction.

    Write methods return the number of affected rows.
    """

    async def fetch_checkout_state(self, book_id: UUID) -> Optional[CheckoutState]:
        ...

    async def insert_checkout(
        self,
        checkout_id: UUID,
        book_id: UUID,
        user_id: UUID,
        checked_out_at: datetime,
    ) -> int:
        ...

    async def insert_returned_checkout(self, checkout_id: UUID, returned_at: datetime) -> int:
        """Copy the active row ``checkout_id`` into history, stamped with ``returned_at``."""
        ...

    async def delete_checkout(self, checkout_id: UUID) -> int:
        ...


class CheckoutStore(Protocol):
    def transaction(self) -> AsyncContextManager[CheckoutTransaction]:
        """
        Begin a serializable transaction.

        Commits when the block exits normally and rolls back otherwise.
        Raises ``TransactionFailureError`` if the commit is refused.
        """
        ...


class QueryStore(Protocol):
    async def find_book_status(self, book_id: UUID) -> Optional[BookStatus]:
        """The book with its active checkout, or None if the book does not exist."""
        ...

    async def find_unreturned_all(self) -> List[CheckoutRecord]:
        ...

    async def find_unreturned_by_user_id(self, user_id: UUID) -> List[CheckoutRecord]:
        ...

    async def find_unreturned_by_book_id(self, book_id: UUID) -> Optional[CheckoutRecord]:
        ...

    async def find_returned_by_book_id(self, book_id: UUID) -> List[CheckoutRecord]:
        ...
