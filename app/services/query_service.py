"""
Read-only lending projections.
"""

from typing import List, Optional
from uuid import UUID

from app.schemas.checkout import BookStatus, CheckoutRecord
from app.services.checkout_store import QueryStore


class QueryEngine:
    """Current checkout status, active checkouts and per-book lending history."""

    def __init__(self, store: QueryStore):
        self._store = store

    async def find_checkout_status(self, book_id: UUID) -> Optional[BookStatus]:
        """The book and its active checkout, or None for an unknown book."""
        return await self._store.find_book_status(book_id)

    async def find_unreturned_all(self) -> List[CheckoutRecord]:
        """All active checkouts, oldest first."""
        return await self._store.find_unreturned_all()

    async def find_unreturned_by_user_id(self, user_id: UUID) -> List[CheckoutRecord]:
        """Active checkouts held by ``user_id``, oldest first."""
        return await self._store.find_unreturned_by_user_id(user_id)

    async def find_history_by_book_id(self, book_id: UUID) -> List[CheckoutRecord]:
        """
        The book's lending timeline.

        Returned checkouts are ordered by checkout time ascending. The active
        checkout, if any, is always placed first: it is necessarily the most
        recent lending of the book.
        """
        active = await self._store.find_unreturned_by_book_id(book_id)
        history = list(await self._store.find_returned_by_book_id(book_id))

        if active is not None:
            history.insert(0, active)

        return history
