"""
SQLAlchemy implementation of the checkout store interfaces.

Write statements run through ``serializable_transaction``; read queries use
a plain session at the server's default isolation level. Driver errors are
translated into the lending error taxonomy at this boundary so nothing above
it needs to know about SQLAlchemy.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Callable, List, Optional
from uuid import UUID

from sqlalchemy import DateTime, delete, insert, literal, select
from sqlalchemy.exc import DBAPIError, IntegrityError, InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import sessionmaker

from app.core.database import AsyncSessionLocal, serializable_transaction
from app.core.exceptions import (
    ConflictError,
    LendingError,
    NotFoundError,
    StoreUnavailableError,
    TransactionFailureError,
)
from app.models.book import Book
from app.models.checkout import Checkout, ReturnedCheckout
from app.models.user import User
from app.schemas.checkout import (
    BookCheckout,
    BookOwner,
    BookStatus,
    CheckoutBook,
    CheckoutRecord,
    CheckoutState,
)

logger = logging.getLogger(__name__)

# serialization_failure, deadlock_detected
SERIALIZATION_FAILURE_CODES = {"40001", "40P01"}
FOREIGN_KEY_VIOLATION = "23503"

checkouts_table = Checkout.__table__
returned_checkouts_table = ReturnedCheckout.__table__


def _sqlstate(error: DBAPIError) -> Optional[str]:
    orig = getattr(error, "orig", None)
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def _is_foreign_key_violation(error: IntegrityError) -> bool:
    # SQLite reports no SQLSTATE, only the message
    return _sqlstate(error) == FOREIGN_KEY_VIOLATION or "FOREIGN KEY constraint failed" in str(error.orig)


def translate_write_error(error: Exception) -> LendingError:
    """Map a driver failure inside a write transaction to a lending error."""
    if isinstance(error, DBAPIError):
        if _sqlstate(error) in SERIALIZATION_FAILURE_CODES:
            return TransactionFailureError("Transaction aborted by a concurrent update; retry the operation")
        if error.connection_invalidated or isinstance(error, InterfaceError):
            return StoreUnavailableError("Lost connection to the database")
        if isinstance(error, IntegrityError):
            return ConflictError("The lending records changed concurrently; the operation was rejected")
        if isinstance(error, OperationalError):
            return TransactionFailureError("Transaction could not be committed; retry the operation")
        return StoreUnavailableError("Database operation failed")
    return StoreUnavailableError("Database is unavailable")


class SqlCheckoutTransaction:
    """``CheckoutTransaction`` bound to one SQLAlchemy session."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def fetch_checkout_state(self, book_id: UUID) -> Optional[CheckoutState]:
        stmt = (
            select(
                Book.id.label("book_id"),
                Checkout.checkout_id,
                Checkout.user_id,
                Checkout.checked_out_at,
            )
            .select_from(Book)
            .outerjoin(Checkout, Checkout.book_id == Book.id)
            .where(Book.id == book_id)
        )
        row = (await self._session.execute(stmt)).first()
        if row is None:
            return None
        return CheckoutState(
            book_id=row.book_id,
            checkout_id=row.checkout_id,
            user_id=row.user_id,
            checked_out_at=row.checked_out_at,
        )

    async def insert_checkout(
        self,
        checkout_id: UUID,
        book_id: UUID,
        user_id: UUID,
        checked_out_at: datetime,
    ) -> int:
        stmt = insert(checkouts_table).values(
            checkout_id=checkout_id,
            book_id=book_id,
            user_id=user_id,
            checked_out_at=checked_out_at,
        )
        try:
            result = await self._session.execute(stmt)
        except IntegrityError as e:
            if _is_foreign_key_violation(e):
                raise NotFoundError(f"User ({user_id}) was not found") from e
            raise ConflictError(f"Book ({book_id}) is already checked out") from e
        return result.rowcount

    async def insert_returned_checkout(self, checkout_id: UUID, returned_at: datetime) -> int:
        source = select(
            Checkout.checkout_id,
            Checkout.book_id,
            Checkout.user_id,
            Checkout.checked_out_at,
            literal(returned_at, DateTime(timezone=True)),
        ).where(Checkout.checkout_id == checkout_id)
        stmt = insert(returned_checkouts_table).from_select(
            ["checkout_id", "book_id", "user_id", "checked_out_at", "returned_at"],
            source,
        )
        result = await self._session.execute(stmt)
        return result.rowcount

    async def delete_checkout(self, checkout_id: UUID) -> int:
        stmt = delete(checkouts_table).where(checkouts_table.c.checkout_id == checkout_id)
        result = await self._session.execute(stmt)
        return result.rowcount


class SqlCheckoutStore:
    """``CheckoutStore`` over the relational database."""

    def __init__(
        self,
        session_factory: Optional[sessionmaker] = None,
        isolation_level: Optional[str] = None,
    ):
        self._session_factory = session_factory or AsyncSessionLocal
        self._isolation_level = isolation_level

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[SqlCheckoutTransaction]:
        try:
            async with serializable_transaction(self._session_factory, self._isolation_level) as session:
                yield SqlCheckoutTransaction(session)
        except LendingError:
            raise
        except (SQLAlchemyError, OSError) as e:
            error = translate_write_error(e)
            logger.warning(f"Write transaction rolled back: {error.message} ({e.__class__.__name__})")
            raise error from e


def _active_record(row) -> CheckoutRecord:
    return CheckoutRecord(
        id=row.checkout_id,
        checked_out_by=row.user_id,
        checked_out_at=row.checked_out_at,
        returned_at=None,
        book=CheckoutBook(id=row.book_id, title=row.title, author=row.author, isbn=row.isbn),
    )


def _returned_record(row) -> CheckoutRecord:
    return CheckoutRecord(
        id=row.checkout_id,
        checked_out_by=row.user_id,
        checked_out_at=row.checked_out_at,
        returned_at=row.returned_at,
        book=CheckoutBook(id=row.book_id, title=row.title, author=row.author, isbn=row.isbn),
    )


def _book_status(row) -> BookStatus:
    checkout = None
    if row.checkout_id is not None:
        checkout = BookCheckout(
            id=row.checkout_id,
            checked_out_by=row.user_id,
            checked_out_at=row.checked_out_at,
        )
    return BookStatus(
        id=row.book_id,
        title=row.title,
        author=row.author,
        isbn=row.isbn,
        description=row.description,
        owner=BookOwner(id=row.owner_id, name=row.owner_name),
        checkout=checkout,
    )


def _active_checkouts():
    return (
        select(
            Checkout.checkout_id,
            Checkout.book_id,
            Checkout.user_id,
            Checkout.checked_out_at,
            Book.title,
            Book.author,
            Book.isbn,
        )
        .join(Book, Book.id == Checkout.book_id)
        .order_by(Checkout.checked_out_at.asc(), Checkout.checkout_id.asc())
    )


class SqlQueryStore:
    """``QueryStore`` over the relational database."""

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self._session_factory = session_factory or AsyncSessionLocal

    async def _fetch(self, stmt, mapper: Callable) -> List:
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return [mapper(row) for row in result]
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Checkout query failed: {e}")
            raise StoreUnavailableError("Database is unavailable") from e

    async def find_book_status(self, book_id: UUID) -> Optional[BookStatus]:
        stmt = (
            select(
                Book.id.label("book_id"),
                Book.title,
                Book.author,
                Book.isbn,
                Book.description,
                User.id.label("owner_id"),
                User.name.label("owner_name"),
                Checkout.checkout_id,
                Checkout.user_id,
                Checkout.checked_out_at,
            )
            .select_from(Book)
            .join(User, User.id == Book.owned_by)
            .outerjoin(Checkout, Checkout.book_id == Book.id)
            .where(Book.id == book_id)
        )
        statuses = await self._fetch(stmt, _book_status)
        return statuses[0] if statuses else None

    async def find_unreturned_all(self) -> List[CheckoutRecord]:
        return await self._fetch(_active_checkouts(), _active_record)

    async def find_unreturned_by_user_id(self, user_id: UUID) -> List[CheckoutRecord]:
        stmt = _active_checkouts().where(Checkout.user_id == user_id)
        return await self._fetch(stmt, _active_record)

    async def find_unreturned_by_book_id(self, book_id: UUID) -> Optional[CheckoutRecord]:
        stmt = _active_checkouts().where(Checkout.book_id == book_id)
        records = await self._fetch(stmt, _active_record)
        return records[0] if records else None

    async def find_returned_by_book_id(self, book_id: UUID) -> List[CheckoutRecord]:
        stmt = (
            select(
                ReturnedCheckout.checkout_id,
                ReturnedCheckout.book_id,
                ReturnedCheckout.user_id,
                ReturnedCheckout.checked_out_at,
                ReturnedCheckout.returned_at,
                Book.title,
                Book.author,
                Book.isbn,
            )
            .join(Book, Book.id == ReturnedCheckout.book_id)
            .where(ReturnedCheckout.book_id == book_id)
            .order_by(ReturnedCheckout.checked_out_at.asc(), ReturnedCheckout.checkout_id.asc())
        )
        return await self._fetch(stmt, _returned_record)
