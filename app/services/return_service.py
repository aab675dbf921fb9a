"""
Return engine: closes an active checkout.

A return is accepted only when the supplied checkout id and borrower match
the book's current active checkout. The active row is copied into history
and deleted inside a single serializable transaction.
"""

import logging

from app.core.exceptions import ConflictError, NotFoundError, WriteAnomalyError
from app.schemas.checkout import UpdateReturned
from app.services.checkout_store import CheckoutStore

logger = logging.getLogger(__name__)


class ReturnEngine:
    """Performs returns against a ``CheckoutStore``."""

    def __init__(self, store: CheckoutStore):
        self._store = store

    async def return_book(self, event: UpdateReturned) -> None:
        """
        Move the matching active checkout into the returned history.

        A book without an active checkout is treated exactly like a mismatch:
        both raise ``ConflictError`` and leave the store untouched.

        Raises:
            NotFoundError: the book does not exist
            ConflictError: no active checkout matches (checkout id, borrower, book),
                or ``returned_at`` precedes the checkout time
            WriteAnomalyError: the history insert or the delete affected no rows
            TransactionFailureError: the store refused to commit
        """
        async with self._store.transaction() as tx:
            state = await tx.fetch_checkout_state(event.book_id)

            if state is None:
                raise NotFoundError(f"Book ({event.book_id}) was not found")

            if not state.is_checked_out:
                logger.warning(f"Rejected return of checkout {event.checkout_id}: book {event.book_id} is not checked out")
                raise ConflictError(
                    f"Checkout ({event.checkout_id}) cannot be returned: "
                    f"book ({event.book_id}) has no active checkout"
                )

            if not state.matches(event.checkout_id, event.returned_by):
                logger.warning(f"Rejected return of checkout {event.checkout_id}: does not match the active checkout")
                raise ConflictError(
                    f"Checkout ({event.checkout_id}) by user ({event.returned_by}) "
                    f"for book ({event.book_id}) cannot be returned"
                )

            if state.checked_out_at is not None and event.returned_at < state.checked_out_at:
                raise ConflictError(
                    f"Return time {event.returned_at.isoformat()} precedes "
                    f"checkout time {state.checked_out_at.isoformat()}"
                )

            affected = await tx.insert_returned_checkout(event.checkout_id, event.returned_at)
            if affected == 0:
                logger.error(f"History insert for checkout {event.checkout_id} affected no rows")
                raise WriteAnomalyError("No returned checkout record has been created")

            affected = await tx.delete_checkout(event.checkout_id)
            if affected == 0:
                logger.error(f"Delete of active checkout {event.checkout_id} affected no rows")
                raise WriteAnomalyError("No checkout record has been deleted")

        logger.info(f"Book {event.book_id} returned by user {event.returned_by} (checkout {event.checkout_id})")
