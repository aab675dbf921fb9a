"""
API endpoints for lending books.

Checking out and returning always act on behalf of the authenticated user;
the timestamps are taken from the server clock.
"""

from fastapi import APIRouter, Depends, status
from uuid import UUID

from app.core.security import get_current_user
from app.models.user import User
from app.services.lending_service import LendingService, get_lending_service
from app.schemas.checkout import BookResponse, CheckoutCreatedResponse, CheckoutsResponse
from app.utils.clock import utc_now

router = APIRouter()


@router.post(
    "/books/{book_id}/checkouts",
    response_model=CheckoutCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
async def checkout_book(
    book_id: UUID,
    service: LendingService = Depends(get_lending_service),
    current_user: User = Depends(get_current_user)
):
    """Check out a book for the current user."""
    checkout_id = await service.checkout(book_id, current_user.id, utc_now())
    return CheckoutCreatedResponse(checkout_id=checkout_id)


@router.put("/books/{book_id}/checkouts/{checkout_id}/returned", status_code=status.HTTP_200_OK)
async def return_book(
    book_id: UUID,
    checkout_id: UUID,
    service: LendingService = Depends(get_lending_service),
    current_user: User = Depends(get_current_user)
):
    """Return a book the current user has checked out."""
    await service.return_book(checkout_id, book_id, current_user.id, utc_now())
    return None


@router.get("/books/checkouts", response_model=CheckoutsResponse)
async def show_checked_out_list(
    service: LendingService = Depends(get_lending_service),
    current_user: User = Depends(get_current_user)
):
    """List every book currently checked out, oldest checkout first."""
    checkouts = await service.list_active_checkouts()
    return CheckoutsResponse.from_records(checkouts)


@router.get("/books/{book_id}/checkout-history", response_model=CheckoutsResponse)
async def checkout_history(
    book_id: UUID,
    service: LendingService = Depends(get_lending_service),
    current_user: User = Depends(get_current_user)
):
    """
    Get the lending history of a book.
    The active checkout, if any, comes first, followed by returned checkouts
    in checkout order.
    """
    checkouts = await service.history_for_book(book_id)
    return CheckoutsResponse.from_records(checkouts)


# Declared last so that /books/checkouts is not captured by the book id
@router.get("/books/{book_id}", response_model=BookResponse)
async def get_book(
    book_id: UUID,
    service: LendingService = Depends(get_lending_service),
    current_user: User = Depends(get_current_user)
):
    """Get a book with its current checkout, if it is lent out."""
    book = await service.checkout_status_for_book(book_id)
    return BookResponse.model_validate(book)
