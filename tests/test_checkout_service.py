from __future__ import annotations

from decimal import Decimal

import pytest

from pustak_api.models.book import Book
from pustak_api.models.order import OrderStatusEnum
from pustak_api.services.orders.checkout import CheckoutLine, CheckoutService
from pustak_api.services.orders.errors import CheckoutError, InsufficientStockError


@pytest.mark.asyncio
async def test_place_order_merges_duplicate_lines(session_factory, seed) -> None:
    member = await seed.user()
    first = await seed.book(title="Shirishko Phool", price="200.00", stock=4)
    second = await seed.book(title="Karnali Blues", price="99.99", stock=2)

    async with session_factory() as session:
        order = await CheckoutService(session).place_order(
            member.id,
            [
                CheckoutLine(book_id=first.id, quantity=1),
                CheckoutLine(book_id=second.id, quantity=1),
                CheckoutLine(book_id=first.id, quantity=2),
            ],
        )

    assert order.status == OrderStatusEnum.PENDING
    assert len(order.claim_code) == 8
    assert order.total_amount == Decimal("699.99")
    assert order.discount_applied == Decimal("0.00")
    assert sorted((item.book_title, item.quantity) for item in order.items) == [
        ("Karnali Blues", 1),
        ("Shirishko Phool", 3),
    ]

    async with session_factory() as session:
        assert (await session.get(Book, first.id)).stock_quantity == 1
        assert (await session.get(Book, second.id)).stock_quantity == 1


@pytest.mark.asyncio
async def test_place_order_rejects_empty_and_non_positive_lines(session_factory, seed) -> None:
    member = await seed.user()
    book = await seed.book()

    async with session_factory() as session:
        service = CheckoutService(session)
        with pytest.raises(CheckoutError):
            await service.place_order(member.id, [])
        with pytest.raises(CheckoutError):
            await service.place_order(member.id, [CheckoutLine(book_id=book.id, quantity=0)])


@pytest.mark.asyncio
async def test_place_order_counts_merged_quantity_against_stock(session_factory, seed) -> None:
    member = await seed.user()
    book = await seed.book(title="Sumnima", stock=2)

    async with session_factory() as session:
        with pytest.raises(InsufficientStockError) as excinfo:
            await CheckoutService(session).place_order(
                member.id,
                [CheckoutLine(book_id=book.id, quantity=1), CheckoutLine(book_id=book.id, quantity=2)],
            )

    assert excinfo.value.available == 2
    assert excinfo.value.requested == 3
