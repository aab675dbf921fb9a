from fastapi import APIRouter

from .books import router as books_router
from .users import router as users_router

# Create main API router
api_router = APIRouter()

# Include all routers
api_router.include_router(books_router, tags=["Checkouts"])
api_router.include_router(users_router, tags=["Users"])
