"""Checkout: turn a member's basket into a pending pickup order."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence
from uuid import UUID

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pustak_api.models.book import Book
from pustak_api.models.order import Order, OrderItem, OrderStatusEnum
from pustak_api.services.loyalty import MilestoneDiscountEvaluator

from .claim_codes import generate_claim_code
from .errors import BookNotFoundError, CheckoutError, InsufficientStockError

_CENT = Decimal("0.01")


@dataclass(slots=True)
class CheckoutLine:
    book_id: UUID
    quantity: int = 1


class CheckoutService:
    """Creates pending orders with a price snapshot, member discount and claim code."""

    def __init__(self, session: AsyncSession, *, evaluator: MilestoneDiscountEvaluator | None = None) -> None:
        self._session = session
        self._evaluator = evaluator or MilestoneDiscountEvaluator(session)

    async def place_order(self, member_id: UUID, lines: Sequence[CheckoutLine]) -> Order:
        quantities = self._merge_lines(lines)
        books = await self._load_books(quantities.keys())

        now = datetime.now(timezone.utc)
        order = Order(
            member_id=member_id,
            status=OrderStatusEnum.PENDING,
            claim_code=generate_claim_code(),
            order_date=now,
            updated_at=now,
        )
        total = Decimal("0")
        for book_id, quantity in quantities.items():
            book = books[book_id]
            if book.stock_quantity < quantity:
                raise InsufficientStockError(book.title, book.stock_quantity, quantity)
            unit_price = Decimal(str(book.price))
            order.items.append(
                OrderItem(
                    book_id=book.id,
                    book_title=book.title,
                    quantity=quantity,
                    unit_price=unit_price,
                    created_at=now,
                )
            )
            book.stock_quantity -= quantity
            total += unit_price * quantity

        discounts = await self._evaluator.list_active_discounts(member_id)
        percentage = self._evaluator.stacked_percentage(discounts)
        order.total_amount = total.quantize(_CENT, rounding=ROUND_HALF_UP)
        order.discount_applied = (total * percentage / Decimal("100")).quantize(_CENT, rounding=ROUND_HALF_UP)

        self._session.add(order)
        await self._session.commit()
        logger.info(
            "Order placed",
            order_id=str(order.id),
            member_id=str(member_id),
            item_count=len(order.items),
            total_amount=str(order.total_amount),
            discount_applied=str(order.discount_applied),
        )
        return order

    @staticmethod
    def _merge_lines(lines: Sequence[CheckoutLine]) -> dict[UUID, int]:
        if not lines:
            raise CheckoutError("Order must contain at least one item")
        merged: dict[UUID, int] = {}
        for line in lines:
            if line.quantity < 1:
                raise CheckoutError(f"Quantity must be at least 1 for book: {line.book_id}")
            merged[line.book_id] = merged.get(line.book_id, 0) + line.quantity
        return merged

    async def _load_books(self, book_ids) -> dict[UUID, Book]:
        ids = list(book_ids)
        stmt = select(Book).where(Book.id.in_(ids)).with_for_update()
        result = await self._session.execute(stmt)
        books = {book.id: book for book in result.scalars()}
        for book_id in ids:
            if book_id not in books:
                raise BookNotFoundError(book_id)
        return books


__all__ = ["CheckoutLine", "CheckoutService"]
