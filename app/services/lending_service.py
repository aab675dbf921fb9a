"""
Lending service: the single entry point the application layer uses for
checkouts, returns and lending queries.

The service holds no state of its own. It converts external identifiers to
UUIDs and forwards each call to the engine that owns the operation; errors
pass through unchanged. The only error it raises itself is NotFoundError for
the status of an unknown book.
"""

import logging
import uuid
from datetime import datetime
from typing import Callable, List, Optional, Union
from uuid import UUID

from fastapi import Request
from sqlalchemy.orm import sessionmaker

from app.core.exceptions import InvalidIdentifierError, NotFoundError
from app.schemas.checkout import BookStatus, CheckoutRecord, CreateCheckout, UpdateReturned
from app.services.checkout_service import CheckoutEngine
from app.services.checkout_store import CheckoutStore, QueryStore
from app.services.query_service import QueryEngine
from app.services.return_service import ReturnEngine
from app.services.sql_checkout_store import SqlCheckoutStore, SqlQueryStore

logger = logging.getLogger(__name__)

Identifier = Union[UUID, str]


def parse_id(value: Identifier, kind: str = "id") -> UUID:
    """Accept a UUID or its hyphenated / 32-char hex string form."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value).strip())
    except (ValueError, AttributeError, TypeError):
        raise InvalidIdentifierError(f"Invalid {kind}: {value!r}")


class LendingService:
    """Facade over the checkout, return and query engines."""

    def __init__(
        self,
        checkout_engine: CheckoutEngine,
        return_engine: ReturnEngine,
        query_engine: QueryEngine,
    ):
        self.checkout_engine = checkout_engine
        self.return_engine = return_engine
        self.query_engine = query_engine

    @classmethod
    def from_stores(
        cls,
        checkout_store: CheckoutStore,
        query_store: QueryStore,
        id_factory: Callable[[], UUID] = uuid.uuid4,
    ) -> "LendingService":
        return cls(
            CheckoutEngine(checkout_store, id_factory=id_factory),
            ReturnEngine(checkout_store),
            QueryEngine(query_store),
        )

    async def checkout(
        self,
        book_id: Identifier,
        borrower_id: Identifier,
        checked_out_at: datetime,
    ) -> UUID:
        """Lend ``book_id`` to ``borrower_id``; returns the new checkout id."""
        event = CreateCheckout(
            book_id=parse_id(book_id, "book id"),
            checked_out_by=parse_id(borrower_id, "user id"),
            checked_out_at=checked_out_at,
        )
        return await self.checkout_engine.checkout(event)

    async def return_book(
        self,
        checkout_id: Identifier,
        book_id: Identifier,
        borrower_id: Identifier,
        returned_at: datetime,
    ) -> None:
        event = UpdateReturned(
            checkout_id=parse_id(checkout_id, "checkout id"),
            book_id=parse_id(book_id, "book id"),
            returned_by=parse_id(borrower_id, "user id"),
            returned_at=returned_at,
        )
        await self.return_engine.return_book(event)

    async def checkout_status_for_book(self, book_id: Identifier) -> BookStatus:
        book_id = parse_id(book_id, "book id")
        status = await self.query_engine.find_checkout_status(book_id)
        if status is None:
            raise NotFoundError(f"Book ({book_id}) was not found")
        return status

    async def list_active_checkouts(self) -> List[CheckoutRecord]:
        return await self.query_engine.find_unreturned_all()

    async def list_active_checkouts_for_borrower(self, borrower_id: Identifier) -> List[CheckoutRecord]:
        return await self.query_engine.find_unreturned_by_user_id(parse_id(borrower_id, "user id"))

    async def history_for_book(self, book_id: Identifier) -> List[CheckoutRecord]:
        return await self.query_engine.find_history_by_book_id(parse_id(book_id, "book id"))


def build_lending_service(session_factory: Optional[sessionmaker] = None) -> LendingService:
    """Composition root: bind the service to the relational store."""
    service = LendingService.from_stores(
        SqlCheckoutStore(session_factory),
        SqlQueryStore(session_factory),
    )
    logger.info("Lending service initialised")
    return service


# Dependency to get the lending service built at startup
def get_lending_service(request: Request) -> LendingService:
    return request.app.state.lending_service
