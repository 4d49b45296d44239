"""Seed a development member, a counter staff user and a few books."""

from __future__ import annotations

import argparse
import asyncio
import os
from decimal import Decimal
from typing import TypedDict
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pustak_api import models  # noqa: F401
from pustak_api.db.base import Base
from pustak_api.db.session import build_engine
from pustak_api.models.book import Book
from pustak_api.models.user import User, UserRoleEnum

DEV_MEMBER_ID = UUID("6f1d0c1e-0000-4000-8000-000000000001")
DEV_STAFF_ID = UUID("6f1d0c1e-0000-4000-8000-000000000002")


class SeedUser(TypedDict):
    id: UUID
    email: str
    full_name: str
    role: str


class SeedBook(TypedDict):
    id: UUID
    title: str
    author: str
    price: Decimal
    stock_quantity: int


DEV_USERS: list[SeedUser] = [
    {
        "id": DEV_MEMBER_ID,
        "email": os.getenv("DEV_MEMBER_EMAIL", "member@pustak.dev").lower(),
        "full_name": "Member QA",
        "role": UserRoleEnum.MEMBER.value,
    },
    {
        "id": DEV_STAFF_ID,
        "email": os.getenv("DEV_STAFF_EMAIL", "staff@pustak.dev").lower(),
        "full_name": "Counter Staff QA",
        "role": UserRoleEnum.STAFF.value,
    },
]

DEV_BOOKS: list[SeedBook] = [
    {
        "id": UUID("6f1d0c1e-0000-4000-8000-0000000000b1"),
        "title": "Muna Madan",
        "author": "Laxmi Prasad Devkota",
        "price": Decimal("350.00"),
        "stock_quantity": 50,
    },
    {
        "id": UUID("6f1d0c1e-0000-4000-8000-0000000000b2"),
        "title": "Seto Dharti",
        "author": "Amar Neupane",
        "price": Decimal("650.00"),
        "stock_quantity": 25,
    },
]


async def seed_users(session: AsyncSession) -> None:
    for user in DEV_USERS:
        with session.no_autoflush:
            existing = await session.execute(select(User).where(User.email == user["email"]))
        record = existing.scalar_one_or_none()

        if record:
            record.full_name = user["full_name"]
            record.role = user["role"]
        else:
            session.add(User(**user))
    await session.commit()


async def seed_books(session: AsyncSession) -> None:
    for book in DEV_BOOKS:
        record = await session.get(Book, book["id"])
        if record:
            record.price = book["price"]
            record.stock_quantity = max(record.stock_quantity, book["stock_quantity"])
        else:
            session.add(Book(**book))
    await session.commit()


async def main(create_schema: bool) -> None:
    engine = build_engine()
    session_factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

    try:
        if create_schema:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        async with session_factory() as session:
            await seed_users(session)
            await seed_books(session)
        print(f"Development data ready ✅ member={DEV_MEMBER_ID} staff={DEV_STAFF_ID}")
    finally:
        await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed Pustak development data")
    parser.add_argument(
        "--create-schema",
        action="store_true",
        help="Create missing tables directly instead of relying on alembic upgrade",
    )
    asyncio.run(main(parser.parse_args().create_schema))
