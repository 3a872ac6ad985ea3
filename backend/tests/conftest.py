"""
Pytest fixtures for the test database, HTTP client and authentication.

Each test gets its own file-backed SQLite database so that concurrent
sessions really contend for the write lock, the same way admission units
contend for row locks on PostgreSQL.
"""

import itertools
import os
from datetime import datetime, timezone, timedelta
from typing import AsyncGenerator

os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession

from coursebook.main import app
from coursebook.db.session import Database, get_db
from coursebook.core.security import create_access_token
from coursebook.models import User, Course, CreditPackage, CreditPurchase


@pytest_asyncio.fixture(scope="function")
async def database(tmp_path) -> AsyncGenerator[Database, None]:
    """Fresh schema in a temporary SQLite file."""
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'coursebook_test.db'}")
    await db.create_all()
    yield db
    await db.drop_all()
    await db.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(database: Database) -> AsyncGenerator[AsyncSession, None]:
    async with database.session() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the DB dependency with the test session."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def make_user(database: Database):
    """
    Factory for users, optionally with an initial credit grant.

    Rows are written through their own short-lived session, so the returned
    objects are detached and keep their loaded ids even after a rejected
    admission rolls back `db_session`.
    """
    counter = itertools.count(1)

    async def _make(credits: int = 0, role: str = "USER", price_paid: int = None) -> User:
        n = next(counter)
        async with database.session() as session:
            user = User(email=f"{role.lower()}{n}@example.com", name=f"{role.lower()}{n}", role=role)
            session.add(user)
            await session.flush()
            if credits:
                session.add(
                    CreditPurchase(
                        user_id=user.id,
                        credits=credits,
                        price_paid=credits * 100 if price_paid is None else price_paid,
                    )
                )
            await session.commit()
        return user

    return _make


@pytest_asyncio.fixture
async def coach(make_user) -> User:
    return await make_user(role="COACH")


@pytest_asyncio.fixture
async def make_course(database: Database, coach: User):
    counter = itertools.count(1)

    async def _make(max_participants: int = 10, coach_user: User = None) -> Course:
        n = next(counter)
        start = datetime.now(timezone.utc) + timedelta(days=7 + n)
        course = Course(
            coach_user_id=(coach_user or coach).id,
            name=f"Strength Training {n}",
            description="Coach-led session",
            start_at=start,
            end_at=start + timedelta(hours=1),
            max_participants=max_participants,
        )
        async with database.session() as session:
            session.add(course)
            await session.commit()
        return course

    return _make


@pytest_asyncio.fixture
async def test_user(make_user) -> User:
    """A user holding three credits."""
    return await make_user(credits=3)


@pytest_asyncio.fixture
async def test_course(make_course) -> Course:
    return await make_course(max_participants=10)


@pytest_asyncio.fixture
async def credit_package(database: Database) -> CreditPackage:
    package = CreditPackage(name="7 lessons", credit_amount=7, price=1400)
    async with database.session() as session:
        session.add(package)
        await session.commit()
    return package


@pytest_asyncio.fixture
async def headers_for():
    """Build Authorization headers for a user, as the auth service would issue them."""

    def _headers(user: User, role: str = None) -> dict:
        token = create_access_token(data={"sub": str(user.id), "role": role or user.role})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest_asyncio.fixture
async def auth_headers(headers_for, test_user: User) -> dict:
    return headers_for(test_user)
