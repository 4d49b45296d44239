"""Lifetime order milestone rewards."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable
from uuid import UUID

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from pustak_api.core.settings import settings
from pustak_api.models.discount import MemberDiscount
from pustak_api.models.notification import Notification
from pustak_api.models.order import Order, OrderStatusEnum
from pustak_api.observability.fulfillment import get_fulfillment_store
from pustak_api.services.notifications import NotificationService

_MAX_STACKED_PERCENTAGE = Decimal("100")


@dataclass(slots=True)
class MilestoneReward:
    """Discount and notification issued for a milestone crossing."""

    discount: MemberDiscount
    notification: Notification
    confirmed_orders: int


class MilestoneDiscountEvaluator:
    """Grants the stackable discount when a member's confirmed order count hits the threshold."""

    def __init__(
        self,
        session: AsyncSession,
        *,
        notifications: NotificationService | None = None,
        threshold: int | None = None,
        percentage: float | Decimal | None = None,
    ) -> None:
        self._session = session
        self._notifications = notifications or NotificationService(session)
        self.threshold = threshold or settings.milestone_order_threshold
        self.percentage = Decimal(str(percentage or settings.milestone_discount_percentage))

    async def count_confirmed_orders(self, member_id: UUID) -> int:
        stmt = select(func.count(Order.id)).where(
            Order.member_id == member_id,
            Order.status == OrderStatusEnum.CONFIRMED,
        )
        result = await self._session.execute(stmt)
        return int(result.scalar_one())

    async def has_milestone_discount(self, member_id: UUID, milestone: int) -> bool:
        stmt = select(func.count(MemberDiscount.id)).where(
            MemberDiscount.member_id == member_id,
            MemberDiscount.milestone == milestone,
        )
        result = await self._session.execute(stmt)
        return int(result.scalar_one()) > 0

    async def evaluate(self, order: Order) -> MilestoneReward | None:
        """Issue the milestone reward if ``order`` brought the member exactly to the threshold.

        Counts include ``order`` itself, so callers must flush the confirmation first.
        Nothing is issued above or below the threshold, nor when the member already
        holds the reward for this milestone.
        """

        store = get_fulfillment_store()
        member_id = order.member_id
        confirmed = await self.count_confirmed_orders(member_id)
        if confirmed != self.threshold:
            logger.debug(
                "Milestone not reached",
                member_id=str(member_id),
                confirmed_orders=confirmed,
                threshold=self.threshold,
            )
            return None

        if await self.has_milestone_discount(member_id, self.threshold):
            store.record_milestone("skipped", member_id=str(member_id))
            logger.info(
                "Milestone discount already granted",
                member_id=str(member_id),
                milestone=self.threshold,
            )
            return None

        discount = MemberDiscount(
            member_id=member_id,
            percentage=self.percentage,
            is_stackable=True,
            is_active=True,
            milestone=self.threshold,
            source_order_id=order.id,
            applied_at=datetime.now(timezone.utc),
        )
        self._session.add(discount)
        await self._session.flush()

        message = settings.milestone_notification_message.format(
            threshold=self.threshold,
            percentage=float(self.percentage),
        )
        notification = await self._notifications.record(
            member_id,
            message,
            notification_type=settings.milestone_notification_type,
            order_id=order.id,
        )

        store.record_milestone("issued", member_id=str(member_id))
        logger.info(
            "Milestone discount issued",
            member_id=str(member_id),
            order_id=str(order.id),
            discount_id=str(discount.id),
            percentage=str(self.percentage),
            milestone=self.threshold,
        )
        return MilestoneReward(discount=discount, notification=notification, confirmed_orders=confirmed)

    async def list_active_discounts(self, member_id: UUID) -> list[MemberDiscount]:
        stmt = (
            select(MemberDiscount)
            .where(MemberDiscount.member_id == member_id, MemberDiscount.is_active.is_(True))
            .order_by(MemberDiscount.applied_at.asc())
        )
        result = await self._session.execute(stmt)
        return list(result.scalars())

    def orders_remaining(self, confirmed_orders: int) -> int:
        return max(self.threshold - confirmed_orders, 0)

    @staticmethod
    def stacked_percentage(discounts: Iterable[MemberDiscount]) -> Decimal:
        """Add up active stackable discounts, keeping only the best non-stackable one."""

        stackable = Decimal("0")
        exclusive = Decimal("0")
        for discount in discounts:
            if not discount.is_active:
                continue
            value = Decimal(str(discount.percentage))
            if discount.is_stackable:
                stackable += value
            else:
                exclusive = max(exclusive, value)
        return min(stackable + exclusive, _MAX_STACKED_PERCENTAGE)

