"""Order fulfillment state machine and audit logging."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pustak_api.models.order import Order, OrderStatusEnum
from pustak_api.models.order_state_event import OrderStateEvent, OrderStateEventTypeEnum
from pustak_api.models.user import User
from pustak_api.observability.fulfillment import get_fulfillment_store
from pustak_api.observability.tracing import get_tracer
from pustak_api.services.loyalty import MilestoneDiscountEvaluator, MilestoneReward
from pustak_api.services.notifications import NotificationService

from .claim_codes import verify_claim_code
from .errors import (
    InvalidClaimCodeError,
    InvalidOrderStateError,
    OrderNotFoundError,
    OrderStateError,
    UnknownOrderStatusError,
)

_tracer = get_tracer(__name__)


@dataclass(slots=True)
class FulfillmentResult:
    """Outcome of a successful counter pickup."""

    order: Order
    milestone: MilestoneReward | None = None


class OrderStateMachine:
    """Pickup confirmation, staff overrides and the order audit timeline."""

    def __init__(
        self,
        session: AsyncSession,
        *,
        evaluator: MilestoneDiscountEvaluator | None = None,
        notifications: NotificationService | None = None,
    ) -> None:
        self._session = session
        self._notifications = notifications or NotificationService(session)
        self._evaluator = evaluator or MilestoneDiscountEvaluator(session, notifications=self._notifications)

    async def process_order(self, order_id: UUID, submitted_code: str | None, staff_id: UUID) -> FulfillmentResult:
        """Confirm a pending order after checking the claim code presented at the counter.

        The confirmation and any milestone reward commit together; a failing
        milestone evaluation is rolled back to its savepoint and never fails the
        pickup. The reward notification is pushed only after the commit.
        """

        store = get_fulfillment_store()
        with _tracer.start_as_current_span("orders.process_order") as span:
            span.set_attribute("order.id", str(order_id))
            try:
                order = await verify_claim_code(self._session, order_id, submitted_code)
            except OrderNotFoundError:
                store.record_claim("not_found", order_id=str(order_id))
                raise
            except InvalidClaimCodeError:
                store.record_claim("invalid_code", order_id=str(order_id))
                await self._record_rejected_claim(order_id, staff_id)
                logger.warning("Claim code rejected", order_id=str(order_id), staff_id=str(staff_id))
                raise

            # Serialize confirmations per member so the milestone count is exact.
            await self._lock_member(order.member_id)
            await self._session.refresh(order)

            current_status = order.status
            if current_status != OrderStatusEnum.PENDING:
                store.record_claim("not_pending", order_id=str(order_id))
                raise InvalidOrderStateError(current_status)

            order.status = OrderStatusEnum.CONFIRMED
            if order.processed_by_staff_id is None:
                order.processed_by_staff_id = staff_id
            self._session.add(
                self._build_event(
                    order_id=order.id,
                    event_type=OrderStateEventTypeEnum.STATE_CHANGE,
                    actor_id=staff_id,
                    from_status=current_status,
                    to_status=OrderStatusEnum.CONFIRMED,
                    notes="Claim code verified at pickup",
                )
            )
            await self._session.flush()

            reward = await self._evaluate_milestone(order)

            await self._session.commit()
            await self._session.refresh(order)
            store.record_claim("confirmed", order_id=str(order.id))
            span.set_attribute("order.milestone_issued", reward is not None)
            logger.info(
                "Order processed",
                order_id=str(order.id),
                member_id=str(order.member_id),
                staff_id=str(staff_id),
                milestone_issued=reward is not None,
            )

        if reward is not None:
            await self._notifications.deliver(reward.notification)
        return FulfillmentResult(order=order, milestone=reward)

    async def update_status(self, order_id: UUID, new_status: str | OrderStatusEnum, staff_id: UUID) -> Order:
        """Staff override of an order's status; skips claim verification and milestone checks."""

        order = await self._get_order(order_id)
        target_status = self._coerce_status(new_status)
        current_status = order.status
        if target_status == OrderStatusEnum.PENDING and current_status != OrderStatusEnum.PENDING:
            raise InvalidOrderStateError(
                current_status,
                f"Cannot move order from {current_status.value} back to {OrderStatusEnum.PENDING.value}",
            )

        order.status = target_status
        if order.processed_by_staff_id is None:
            order.processed_by_staff_id = staff_id
        self._session.add(
            self._build_event(
                order_id=order.id,
                event_type=OrderStateEventTypeEnum.STATE_CHANGE,
                actor_id=staff_id,
                from_status=current_status,
                to_status=target_status,
                notes="Status overridden by staff",
                metadata={"override": True},
            )
        )
        await self._session.commit()
        await self._session.refresh(order)
        get_fulfillment_store().record_override(target_status.value)
        logger.info(
            "Order status overridden",
            order_id=str(order.id),
            from_status=current_status.value,
            to_status=target_status.value,
            staff_id=str(staff_id),
        )
        return order

    async def list_events(self, order_id: UUID) -> list[OrderStateEvent]:
        """Return chronological order state events."""

        await self._get_order(order_id)
        stmt = (
            select(OrderStateEvent)
            .where(OrderStateEvent.order_id == order_id)
            .order_by(OrderStateEvent.created_at.asc())
        )
        result = await self._session.execute(stmt)
        return list(result.scalars())

    async def _evaluate_milestone(self, order: Order) -> MilestoneReward | None:
        try:
            async with self._session.begin_nested():
                return await self._evaluator.evaluate(order)
        except Exception as exc:  # noqa: BLE001 - rewards must not block fulfillment
            store = get_fulfillment_store()
            store.record_milestone("failed", member_id=str(order.member_id))
            store.record_failure(f"Milestone evaluation failed for order {order.id}: {exc}")
            logger.exception(
                "Milestone evaluation failed",
                order_id=str(order.id),
                member_id=str(order.member_id),
            )
            return None

    async def _record_rejected_claim(self, order_id: UUID, staff_id: UUID) -> None:
        self._session.add(
            self._build_event(
                order_id=order_id,
                event_type=OrderStateEventTypeEnum.CLAIM_REJECTED,
                actor_id=staff_id,
                notes="Claim code did not match",
            )
        )
        await self._session.commit()

    async def _lock_member(self, member_id: UUID) -> None:
        stmt = select(User.id).where(User.id == member_id).with_for_update()
        await self._session.execute(stmt)

    async def _get_order(self, order_id: UUID) -> Order:
        stmt = select(Order).where(Order.id == order_id)
        result = await self._session.execute(stmt)
        order = result.scalar_one_or_none()
        if not order:
            raise OrderNotFoundError(order_id)
        return order

    @staticmethod
    def _coerce_status(value: str | OrderStatusEnum) -> OrderStatusEnum:
        if isinstance(value, OrderStatusEnum):
            return value
        try:
            return OrderStatusEnum.parse(value)
        except ValueError as exc:
            raise UnknownOrderStatusError(value) from exc

    @staticmethod
    def _build_event(
        *,
        order_id: UUID,
        event_type: OrderStateEventTypeEnum,
        actor_id: UUID | None,
        from_status: OrderStatusEnum | None = None,
        to_status: OrderStatusEnum | None = None,
        notes: str | None = None,
        metadata: dict | None = None,
    ) -> OrderStateEvent:
        return OrderStateEvent(
            order_id=order_id,
            event_type=event_type,
            actor_id=str(actor_id) if actor_id else None,
            from_status=from_status.value if from_status else None,
            to_status=to_status.value if to_status else None,
            notes=notes,
            metadata_json=metadata or {},
            created_at=datetime.now(timezone.utc),
        )


__all__ = [
    "FulfillmentResult",
    "InvalidClaimCodeError",
    "InvalidOrderStateError",
    "OrderNotFoundError",
    "OrderStateError",
    "OrderStateMachine",
    "UnknownOrderStatusError",
]
