"""Claim code generation and pickup verification."""

from __future__ import annotations

import hmac
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pustak_api.core.settings import settings
from pustak_api.models.order import Order

from .errors import InvalidClaimCodeError, OrderNotFoundError


def generate_claim_code(length: int | None = None) -> str:
    """Return a fresh lowercase hex claim code (8 characters by default)."""

    size = length or settings.claim_code_length
    return uuid4().hex[:size]


def claim_code_matches(stored_code: str | None, submitted_code: str | None) -> bool:
    """Exact, case-sensitive comparison of a stored and a submitted claim code."""

    if not stored_code or submitted_code is None:
        return False
    return hmac.compare_digest(stored_code.encode("utf-8"), submitted_code.encode("utf-8"))


async def verify_claim_code(session: AsyncSession, order_id: UUID, submitted_code: str | None) -> Order:
    """Fetch the order and check the submitted code against it without mutating anything."""

    result = await session.execute(select(Order).where(Order.id == order_id))
    order = result.scalar_one_or_none()
    if order is None:
        raise OrderNotFoundError(order_id)
    if not claim_code_matches(order.claim_code, submitted_code):
        raise InvalidClaimCodeError(order_id)
    return order


__all__ = ["claim_code_matches", "generate_claim_code", "verify_claim_code"]
