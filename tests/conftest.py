import os

# Keep the application engine off the production database during tests
os.environ.setdefault("SQLALCHEMY_DATABASE_URI", "sqlite+aiosqlite:///:memory:")

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
import uuid

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from app import models  # noqa: F401
from app.core.database import Base, configure_sqlite
from app.models.book import Book
from app.models.user import User, UserRole
from app.services.lending_service import LendingService
from tests.fakes import InMemoryLendingStore

T0 = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


def at(minutes: int) -> datetime:
    """A timestamp ``minutes`` after the fixed test epoch."""
    return T0 + timedelta(minutes=minutes)


@pytest.fixture
def store():
    return InMemoryLendingStore()


@pytest.fixture
def service(store):
    return LendingService.from_stores(store, store)


@pytest.fixture
def users():
    return SimpleNamespace(x=uuid.uuid4(), y=uuid.uuid4(), z=uuid.uuid4())


@pytest.fixture
async def session_factory(tmp_path):
    engine = configure_sqlite(create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'lending.db'}"))
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    yield factory
    await engine.dispose()


@pytest.fixture
async def library(session_factory):
    """Users and books persisted in the SQLite test database."""
    async with session_factory() as db:
        owner = User(name="Owner", email="owner@example.com", password_hash="!", role=UserRole.ADMIN)
        alice = User(name="Alice", email="alice@example.com", password_hash="!")
        bob = User(name="Bob", email="bob@example.com", password_hash="!")
        carol = User(name="Carol", email="carol@example.com", password_hash="!")
        db.add_all([owner, alice, bob, carol])
        await db.flush()

        dune = Book(title="Dune", author="Frank Herbert", isbn="9780441172719", owned_by=owner.id)
        emma = Book(title="Emma", author="Jane Austen", isbn="9780141439587", owned_by=owner.id)
        db.add_all([dune, emma])
        await db.commit()

        return SimpleNamespace(
            owner=owner.id,
            alice=alice.id,
            bob=bob.id,
            carol=carol.id,
            dune=dune.id,
            emma=emma.id,
        )
