import uuid

import pytest

from app.core.exceptions import (
    ConflictError,
    NotFoundError,
    TransactionFailureError,
    WriteAnomalyError,
)
from app.schemas.checkout import CreateCheckout
from app.services.checkout_service import CheckoutEngine
from tests.conftest import at


async def test_checkout_creates_active_row_with_generated_id(store, users):
    book_id = store.add_book()
    fixed_id = uuid.uuid4()
    engine = CheckoutEngine(store, id_factory=lambda: fixed_id)

    checkout_id = await engine.checkout(CreateCheckout(book_id=book_id, checked_out_by=users.x, checked_out_at=at(0)))

    assert checkout_id == fixed_id
    assert store.active == {
        fixed_id: {
            "checkout_id": fixed_id,
            "book_id": book_id,
            "user_id": users.x,
            "checked_out_at": at(0),
        }
    }
    assert store.returned == {}


async def test_checkout_unknown_book_is_not_found(store, users):
    engine = CheckoutEngine(store)

    with pytest.raises(NotFoundError):
        await engine.checkout(CreateCheckout(book_id=uuid.uuid4(), checked_out_by=users.x, checked_out_at=at(0)))

    assert store.active == {}
    assert store.rollbacks == 1


async def test_checkout_of_checked_out_book_conflicts(store, users):
    book_id = store.add_book()
    engine = CheckoutEngine(store)
    first = await engine.checkout(CreateCheckout(book_id=book_id, checked_out_by=users.x, checked_out_at=at(0)))

    with pytest.raises(ConflictError):
        await engine.checkout(CreateCheckout(book_id=book_id, checked_out_by=users.y, checked_out_at=at(1)))

    assert list(store.active) == [first]
    assert store.active[first]["user_id"] == users.x


async def test_same_borrower_cannot_check_out_twice(store, users):
    book_id = store.add_book()
    engine = CheckoutEngine(store)
    await engine.checkout(CreateCheckout(book_id=book_id, checked_out_by=users.x, checked_out_at=at(0)))

    with pytest.raises(ConflictError):
        await engine.checkout(CreateCheckout(book_id=book_id, checked_out_by=users.x, checked_out_at=at(1)))

    assert len(store.active) == 1


async def test_insert_affecting_no_rows_is_a_write_anomaly(store, users):
    book_id = store.add_book()
    store.drop_checkout_insert = True
    engine = CheckoutEngine(store)

    with pytest.raises(WriteAnomalyError):
        await engine.checkout(CreateCheckout(book_id=book_id, checked_out_by=users.x, checked_out_at=at(0)))

    assert store.active == {}
    assert store.commits == 0


async def test_refused_commit_surfaces_transaction_failure(store, users):
    book_id = store.add_book()
    store.fail_commit = True
    engine = CheckoutEngine(store)

    with pytest.raises(TransactionFailureError) as exc_info:
        await engine.checkout(CreateCheckout(book_id=book_id, checked_out_by=users.x, checked_out_at=at(0)))

    assert exc_info.value.retryable
    assert store.active == {}
