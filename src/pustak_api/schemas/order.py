from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from pustak_api.models.discount import MemberDiscount
from pustak_api.models.notification import Notification
from pustak_api.models.order import Order, OrderItem
from pustak_api.models.order_state_event import OrderStateEvent


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: UUID
    book_id: UUID | None = Field(None, alias="bookId")
    book_title: str = Field(..., alias="bookTitle")
    quantity: int
    unit_price: float = Field(..., alias="unitPrice")
    line_total: float = Field(..., alias="lineTotal")


class OrderResponse(BaseModel):
    """Order as shown to staff and to the owning member (claim code omitted)."""

    model_config = ConfigDict(populate_by_name=True)

    id: UUID
    member_id: UUID = Field(..., alias="memberId")
    member_name: str | None = Field(None, alias="memberName")
    status: str
    total_amount: float = Field(..., alias="totalAmount")
    discount_applied: float = Field(..., alias="discountApplied")
    amount_due: float = Field(..., alias="amountDue")
    processed_by_staff_id: UUID | None = Field(None, alias="processedByStaffId")
    processed_by_staff_name: str | None = Field(None, alias="processedByStaffName")
    order_date: datetime | None = Field(None, alias="orderDate")
    updated_at: datetime | None = Field(None, alias="updatedAt")
    items: list[OrderItemResponse] = Field(default_factory=list)


class MemberDiscountResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: UUID
    percentage: float
    is_stackable: bool = Field(..., alias="isStackable")
    is_active: bool = Field(..., alias="isActive")
    milestone: int | None = None
    source_order_id: UUID | None = Field(None, alias="sourceOrderId")
    applied_at: datetime | None = Field(None, alias="appliedAt")


class NotificationResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: UUID
    order_id: UUID | None = Field(None, alias="orderId")
    message: str
    type: str
    created_at: datetime | None = Field(None, alias="createdAt")
    is_read: bool = Field(..., alias="isRead")


class OrderStateEventResponse(BaseModel):
    """Timeline entry for a status change or a rejected pickup attempt."""

    model_config = ConfigDict(populate_by_name=True)

    id: UUID
    event_type: str = Field(..., alias="eventType")
    actor_id: str | None = Field(None, alias="actorId")
    from_status: str | None = Field(None, alias="fromStatus")
    to_status: str | None = Field(None, alias="toStatus")
    notes: str | None = None
    metadata: dict = Field(default_factory=dict)
    created_at: datetime | None = Field(None, alias="createdAt")


def _money(value: Decimal | None) -> float:
    return float(value or 0)


def build_item_response(item: OrderItem) -> OrderItemResponse:
    unit_price = Decimal(str(item.unit_price or 0))
    return OrderItemResponse(
        id=item.id,
        book_id=item.book_id,
        book_title=item.book_title,
        quantity=item.quantity,
        unit_price=float(unit_price),
        line_total=float(unit_price * item.quantity),
    )


def build_order_response(order: Order) -> OrderResponse:
    """Serialize an order whose items, member and processing staff are loaded."""

    total = Decimal(str(order.total_amount or 0))
    discount = Decimal(str(order.discount_applied or 0))
    member = order.member
    staff = order.processed_by_staff
    return OrderResponse(
        id=order.id,
        member_id=order.member_id,
        member_name=(member.full_name or member.email) if member else None,
        status=order.status.value,
        total_amount=_money(total),
        discount_applied=_money(discount),
        amount_due=_money(max(total - discount, Decimal("0"))),
        processed_by_staff_id=order.processed_by_staff_id,
        processed_by_staff_name=(staff.full_name or staff.email) if staff else None,
        order_date=order.order_date,
        updated_at=order.updated_at,
        items=[build_item_response(item) for item in order.items],
    )


def build_discount_response(discount: MemberDiscount) -> MemberDiscountResponse:
    return MemberDiscountResponse(
        id=discount.id,
        percentage=float(discount.percentage),
        is_stackable=bool(discount.is_stackable),
        is_active=bool(discount.is_active),
        milestone=discount.milestone,
        source_order_id=discount.source_order_id,
        applied_at=discount.applied_at,
    )


def build_event_response(event: OrderStateEvent) -> OrderStateEventResponse:
    return OrderStateEventResponse(
        id=event.id,
        event_type=event.event_type.value,
        actor_id=event.actor_id,
        from_status=event.from_status,
        to_status=event.to_status,
        notes=event.notes,
        metadata=event.metadata_json or {},
        created_at=event.created_at,
    )


def build_notification_response(notification: Notification) -> NotificationResponse:
    return NotificationResponse(
        id=notification.id,
        order_id=notification.order_id,
        message=notification.message,
        type=notification.notification_type,
        created_at=notification.created_at,
        is_read=bool(notification.is_read),
    )
