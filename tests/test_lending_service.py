import asyncio
import uuid

import pytest

from app.core.exceptions import ConflictError, InvalidIdentifierError, NotFoundError, TransactionFailureError
from app.services.lending_service import LendingService, parse_id
from tests.conftest import at
from tests.fakes import InMemoryLendingStore


async def test_lending_scenarios(store, service, users):
    book = store.add_book()

    # A: first checkout wins, second conflicts
    checkout_id = await service.checkout(book, users.x, at(0))
    with pytest.raises(ConflictError):
        await service.checkout(book, users.y, at(5))

    # B: wrong checkout id is rejected, state untouched
    with pytest.raises(ConflictError):
        await service.return_book(uuid.uuid4(), book, users.x, at(10))
    active = await service.list_active_checkouts()
    assert [(c.id, c.checked_out_by) for c in active] == [(checkout_id, users.x)]

    # C: correct return moves the record into history
    await service.return_book(checkout_id, book, users.x, at(10))
    history = await service.history_for_book(book)
    assert len(history) == 1
    assert history[0].id == checkout_id
    assert history[0].checked_out_at == at(0)
    assert history[0].returned_at == at(10)
    assert await service.list_active_checkouts() == []

    # D: the book is available again
    again = await service.checkout(book, users.z, at(15))
    history = await service.history_for_book(book)
    assert [c.id for c in history] == [again, checkout_id]
    assert history[0].returned_at is None


async def test_active_checkouts_for_borrower(store, service, users):
    first_book = store.add_book(title="First")
    second_book = store.add_book(title="Second")
    mine = await service.checkout(first_book, users.x, at(0))
    await service.checkout(second_book, users.y, at(1))

    records = await service.list_active_checkouts_for_borrower(users.x)

    assert [r.id for r in records] == [mine]
    assert records[0].book.title == "First"


async def test_string_identifiers_are_accepted(store, service, users):
    book = store.add_book()

    checkout_id = await service.checkout(book.hex, str(users.x), at(0))
    await service.return_book(str(checkout_id), str(book), users.x.hex, at(1))

    assert [c.id for c in await service.history_for_book(book.hex)] == [checkout_id]


@pytest.mark.parametrize("value", ["", "not-a-uuid", "1234", None])
def test_parse_id_rejects_malformed_values(value):
    with pytest.raises(InvalidIdentifierError):
        parse_id(value, "book id")


async def test_malformed_identifier_never_reaches_store(store, service, users):
    with pytest.raises(InvalidIdentifierError):
        await service.checkout("nope", users.x, at(0))

    assert store.commits == 0 and store.rollbacks == 0


async def test_naive_timestamps_are_treated_as_utc(store, service, users):
    book = store.add_book()

    await service.checkout(book, users.x, at(0).replace(tzinfo=None))

    [record] = await service.list_active_checkouts()
    assert record.checked_out_at == at(0)


@pytest.mark.parametrize("mode", ["locking", "optimistic"])
async def test_concurrent_checkouts_admit_exactly_one(mode, users):
    store = InMemoryLendingStore(mode=mode)
    service = LendingService.from_stores(store, store)
    book = store.add_book()
    borrowers = [uuid.uuid4() for _ in range(8)]

    results = await asyncio.gather(
        *(service.checkout(book, borrower, at(i)) for i, borrower in enumerate(borrowers)),
        return_exceptions=True,
    )

    successes = [r for r in results if isinstance(r, uuid.UUID)]
    failures = [r for r in results if isinstance(r, Exception)]
    assert len(successes) == 1
    assert len(failures) == len(borrowers) - 1
    assert all(isinstance(f, (ConflictError, TransactionFailureError)) for f in failures)
    assert [c.id for c in await service.list_active_checkouts()] == successes


async def test_concurrent_returns_commit_once(store, service, users):
    book = store.add_book()
    checkout_id = await service.checkout(book, users.x, at(0))

    results = await asyncio.gather(
        *(service.return_book(checkout_id, book, users.x, at(10)) for _ in range(4)),
        return_exceptions=True,
    )

    assert results.count(None) == 1
    assert all(isinstance(r, ConflictError) for r in results if r is not None)
    assert len(await service.history_for_book(book)) == 1


async def test_checkout_status_follows_checkout_and_return(store, service, users):
    book = store.add_book()
    assert (await service.checkout_status_for_book(str(book))).is_available

    checkout_id = await service.checkout(book, users.x, at(0))
    status = await service.checkout_status_for_book(book)
    assert (status.checkout.id, status.checkout.checked_out_by) == (checkout_id, users.x)

    await service.return_book(checkout_id, book, users.x, at(10))
    assert (await service.checkout_status_for_book(book)).is_available


async def test_checkout_status_of_unknown_book_is_not_found(service):
    with pytest.raises(NotFoundError):
        await service.checkout_status_for_book(uuid.uuid4())
