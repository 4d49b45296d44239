import os
import sys
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path
from uuid import UUID, uuid4

os.environ.setdefault("TRACING_ENABLED", "false")

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine


def _configure_path() -> None:
    src_path = Path(__file__).resolve().parents[1] / "src"
    if src_path.exists():
        sys.path.insert(0, str(src_path))


_configure_path()

from pustak_api import models  # noqa: E402,F401
from pustak_api.app import create_app  # noqa: E402
from pustak_api.db.base import Base  # noqa: E402
from pustak_api.db.session import enable_sqlite_savepoints, get_session  # noqa: E402
from pustak_api.models import Book, Order, OrderItem, OrderStatusEnum, User, UserRoleEnum  # noqa: E402
from pustak_api.observability.fulfillment import get_fulfillment_store  # noqa: E402
from pustak_api.services.notifications import get_connection_manager  # noqa: E402


@pytest.fixture(autouse=True)
def reset_runtime_state():
    get_fulfillment_store().reset()
    get_connection_manager().reset()
    yield
    get_fulfillment_store().reset()
    get_connection_manager().reset()


async def _create_schema(database_url: str, **engine_kwargs):
    engine = create_async_engine(database_url, future=True, **engine_kwargs)
    enable_sqlite_savepoints(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    return engine


@pytest_asyncio.fixture
async def session_factory():
    engine = await _create_schema("sqlite+aiosqlite:///:memory:")
    factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

    try:
        yield factory
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def file_session_factory(tmp_path):
    """Pooled engine over an on-disk database, for tests that need concurrent connections."""

    engine = await _create_schema(
        f"sqlite+aiosqlite:///{tmp_path / 'pustak.db'}",
        connect_args={"timeout": 15},
    )
    factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

    try:
        yield factory
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def app_with_db(session_factory):
    app = create_app()

    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session

    try:
        yield app, session_factory
    finally:
        app.dependency_overrides.clear()


class Seeder:
    """Creates committed rows for tests, one short-lived session per call."""

    def __init__(self, session_factory) -> None:
        self._session_factory = session_factory
        self._clock = datetime(2025, 1, 1, tzinfo=timezone.utc)

    def _tick(self) -> datetime:
        self._clock += timedelta(minutes=1)
        return self._clock

    async def user(self, role: UserRoleEnum = UserRoleEnum.MEMBER, *, user_id: UUID | None = None, name: str | None = None) -> User:
        async with self._session_factory() as session:
            user = User(
                id=user_id or uuid4(),
                email=f"{role.value}-{uuid4().hex[:6]}@pustak.test",
                full_name=name or f"Test {role.value.title()}",
                role=role.value,
            )
            session.add(user)
            await session.commit()
            return user

    async def book(self, *, title: str = "Muna Madan", price: str = "450.00", stock: int = 5) -> Book:
        async with self._session_factory() as session:
            book = Book(
                id=uuid4(),
                title=title,
                author="Laxmi Prasad Devkota",
                price=Decimal(price),
                stock_quantity=stock,
            )
            session.add(book)
            await session.commit()
            return book

    async def order(
        self,
        member_id: UUID,
        *,
        status: OrderStatusEnum = OrderStatusEnum.PENDING,
        claim_code: str = "abcd1234",
        order_id: UUID | None = None,
        total: str = "450.00",
        processed_by_staff_id: UUID | None = None,
    ) -> Order:
        async with self._session_factory() as session:
            placed_at = self._tick()
            order = Order(
                id=order_id or uuid4(),
                member_id=member_id,
                status=status,
                claim_code=claim_code,
                total_amount=Decimal(total),
                discount_applied=Decimal("0"),
                processed_by_staff_id=processed_by_staff_id,
                order_date=placed_at,
                updated_at=placed_at,
            )
            order.items.append(
                OrderItem(book_title="Muna Madan", quantity=1, unit_price=Decimal(total), created_at=placed_at)
            )
            session.add(order)
            await session.commit()
            return order

    async def confirmed_orders(self, member_id: UUID, count: int) -> list[Order]:
        return [
            await self.order(member_id, status=OrderStatusEnum.CONFIRMED, claim_code=uuid4().hex[:8])
            for _ in range(count)
        ]


@pytest.fixture
def seed(session_factory) -> Seeder:
    return Seeder(session_factory)


@pytest.fixture
def file_seed(file_session_factory) -> Seeder:
    return Seeder(file_session_factory)


def session_headers(user: User) -> dict[str, str]:
    return {"X-Session-User": str(user.id)}


@pytest.fixture
def auth_headers():
    return session_headers
