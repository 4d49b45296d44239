"""Read-side order queries shared by staff and member endpoints."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from pustak_api.models.order import Order

from .errors import OrderNotFoundError


def _detail_query():
    return select(Order).options(
        selectinload(Order.items),
        selectinload(Order.member),
        selectinload(Order.processed_by_staff),
    )


async def get_order_detail(session: AsyncSession, order_id: UUID, *, member_id: UUID | None = None) -> Order:
    """Load an order with everything the order response needs.

    When ``member_id`` is given, orders owned by someone else are reported as missing.
    """

    stmt = _detail_query().where(Order.id == order_id).execution_options(populate_existing=True)
    if member_id is not None:
        stmt = stmt.where(Order.member_id == member_id)
    result = await session.execute(stmt)
    order = result.scalar_one_or_none()
    if order is None:
        raise OrderNotFoundError(order_id)
    return order


async def list_orders(session: AsyncSession, *, member_id: UUID | None = None) -> list[Order]:
    stmt = _detail_query().order_by(Order.order_date.desc())
    if member_id is not None:
        stmt = stmt.where(Order.member_id == member_id)
    result = await session.execute(stmt)
    return list(result.scalars())
