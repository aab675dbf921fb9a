#!/usr/bin/env python3
"""
Script to seed demo users and books for the lending API.

This script:
1. Creates the database tables if they do not exist
2. Creates an admin and two regular users
3. Creates a few books owned by the admin
4. Prints an access token for each user

Usage:
    python scripts/seed_demo_data.py
"""

import asyncio
import sys
import os

# Add the app directory to the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select

from app import models  # noqa: F401  (registers tables on Base.metadata)
from app.core.database import AsyncSessionLocal, create_tables
from app.core.security import create_access_token
from app.models.user import User, UserRole
from app.models.book import Book

DEMO_USERS = [
    ("Library Admin", "admin@library.local", UserRole.ADMIN),
    ("Alice Reader", "alice@library.local", UserRole.USER),
    ("Bob Reader", "bob@library.local", UserRole.USER),
]

DEMO_BOOKS = [
    ("Dune", "Frank Herbert", "9780441172719", "Desert planet epic."),
    ("The Pragmatic Programmer", "Andrew Hunt, David Thomas", "9780201616224", "Software craftsmanship."),
    ("Clean Code", "Robert C. Martin", "9780132350884", "Writing readable code."),
]


async def get_or_create_user(db, name: str, email: str, role: UserRole) -> User:
    """Get a user by email, creating it if missing."""
    result = await db.execute(select(User).where(User.email == email))
    existing = result.scalar_one_or_none()
    if existing:
        print(f"User already exists: {existing.email} (ID: {existing.id})")
        return existing

    # Credentials are managed elsewhere; demo users cannot log in with a password
    user = User(name=name, email=email, password_hash="!", role=role)
    db.add(user)
    await db.flush()
    print(f"Created user: {user.email} (ID: {user.id})")
    return user


async def get_or_create_book(db, owner: User, title: str, author: str, isbn: str, description: str) -> Book:
    """Get a book by ISBN, creating it if missing."""
    result = await db.execute(select(Book).where(Book.isbn == isbn))
    existing = result.scalar_one_or_none()
    if existing:
        print(f"Book already exists: {existing.title} (ID: {existing.id})")
        return existing

    book = Book(title=title, author=author, isbn=isbn, description=description, owned_by=owner.id)
    db.add(book)
    await db.flush()
    print(f"Created book: {book.title} (ID: {book.id})")
    return book


async def main():
    await create_tables()

    async with AsyncSessionLocal() as db:
        users = [await get_or_create_user(db, *row) for row in DEMO_USERS]
        admin = users[0]
        for row in DEMO_BOOKS:
            await get_or_create_book(db, admin, *row)
        await db.commit()

        print("\n--- Access tokens ---")
        for user in users:
            print(f"{user.email}: {create_access_token(user.id)}")


if __name__ == "__main__":
    asyncio.run(main())
