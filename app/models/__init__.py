# Models package
from .user import User, UserRole
from .book import Book
from .checkout import Checkout, ReturnedCheckout
