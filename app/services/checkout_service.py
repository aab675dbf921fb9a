"""
Checkout engine: lends a book to a borrower.

The state check and the insert run in one serializable transaction, so two
requests racing for the same book can never both commit an active checkout.
"""

import logging
import uuid
from typing import Callable
from uuid import UUID

from app.core.exceptions import ConflictError, NotFoundError, WriteAnomalyError
from app.schemas.checkout import CreateCheckout
from app.services.checkout_store import CheckoutStore

logger = logging.getLogger(__name__)


class CheckoutEngine:
    """Performs checkouts against a ``CheckoutStore``."""

    def __init__(self, store: CheckoutStore, id_factory: Callable[[], UUID] = uuid.uuid4):
        self._store = store
        self._id_factory = id_factory

    async def checkout(self, event: CreateCheckout) -> UUID:
        """
        Create an active checkout for ``event.book_id``.

        Returns the new checkout id.

        Raises:
            NotFoundError: the book does not exist
            ConflictError: the book already has an active checkout
            WriteAnomalyError: the insert affected no rows
            TransactionFailureError: the store refused to commit
        """
        async with self._store.transaction() as tx:
            state = await tx.fetch_checkout_state(event.book_id)

            if state is None:
                raise NotFoundError(f"Book ({event.book_id}) was not found")

            if state.is_checked_out:
                logger.warning(f"Rejected checkout of book {event.book_id}: already checked out")
                raise ConflictError(f"Book ({event.book_id}) is already checked out")

            checkout_id = self._id_factory()
            affected = await tx.insert_checkout(
                checkout_id,
                event.book_id,
                event.checked_out_by,
                event.checked_out_at,
            )
            if affected == 0:
                logger.error(f"Checkout insert for book {event.book_id} affected no rows")
                raise WriteAnomalyError("No checkout record has been created")

        logger.info(f"Book {event.book_id} checked out by user {event.checked_out_by} (checkout {checkout_id})")
        return checkout_id
