# Schemas package
from .checkout import (
    CheckoutState, CheckoutBook, CheckoutRecord, CreateCheckout, UpdateReturned,
    BookOwner, BookCheckout, BookStatus,
    CheckoutBookResponse, CheckoutResponse, CheckoutsResponse, CheckoutCreatedResponse,
    BookOwnerResponse, BookCheckoutResponse, BookResponse
)
