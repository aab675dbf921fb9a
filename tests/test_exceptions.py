import pytest
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError, ProgrammingError

from app.core.exceptions import (
    ConflictError,
    StoreUnavailableError,
    TransactionFailureError,
)
from app.services.sql_checkout_store import translate_write_error


class DriverError(Exception):
    def __init__(self, sqlstate=None):
        super().__init__("driver error")
        self.sqlstate = sqlstate


@pytest.mark.parametrize("sqlstate", ["40001", "40P01"])
def test_serialization_failures_are_retryable(sqlstate):
    error = translate_write_error(OperationalError("COMMIT", {}, DriverError(sqlstate)))

    assert isinstance(error, TransactionFailureError)
    assert error.retryable


def test_serialization_failure_is_recognised_on_any_dbapi_error():
    error = translate_write_error(ProgrammingError("SELECT", {}, DriverError("40001")))
    assert isinstance(error, TransactionFailureError)


def test_lock_timeouts_are_transaction_failures():
    error = translate_write_error(OperationalError("INSERT", {}, DriverError()))
    assert isinstance(error, TransactionFailureError)


def test_integrity_errors_are_conflicts():
    error = translate_write_error(IntegrityError("COMMIT", {}, DriverError("23505")))
    assert isinstance(error, ConflictError)
    assert not error.retryable


def test_lost_connections_are_store_unavailable():
    error = translate_write_error(InterfaceError("SELECT", {}, DriverError()))
    assert isinstance(error, StoreUnavailableError)

    invalidated = OperationalError("SELECT", {}, DriverError(), connection_invalidated=True)
    assert isinstance(translate_write_error(invalidated), StoreUnavailableError)


def test_os_errors_are_store_unavailable():
    assert isinstance(translate_write_error(ConnectionRefusedError()), StoreUnavailableError)


def test_status_codes():
    assert ConflictError("x").status_code == 422
    assert TransactionFailureError("x").status_code == 409
    assert StoreUnavailableError("x").status_code == 503
