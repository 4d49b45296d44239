"""Member endpoints: checkout, order history, discounts and notification inbox."""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from pustak_api.api.dependencies.session import require_member
from pustak_api.db.session import get_session
from pustak_api.models.user import User
from pustak_api.schemas.order import (
    MemberDiscountResponse,
    NotificationResponse,
    OrderResponse,
    build_discount_response,
    build_notification_response,
    build_order_response,
)
from pustak_api.services.loyalty import MilestoneDiscountEvaluator
from pustak_api.services.notifications import NotificationService
from pustak_api.services.orders.checkout import CheckoutLine, CheckoutService
from pustak_api.services.orders.errors import BookNotFoundError, CheckoutError, OrderNotFoundError
from pustak_api.services.orders.history import get_order_detail, list_orders


router = APIRouter(prefix="/member", tags=["Member"])


class CheckoutItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    book_id: UUID = Field(..., alias="bookId")
    quantity: int = Field(1, ge=1, description="Copies requested")


class CheckoutRequest(BaseModel):
    """Request model for placing a pickup order."""
    items: List[CheckoutItem] = Field(..., min_length=1, description="Order items")


class PlacedOrderResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    order: OrderResponse
    claim_code: str = Field(..., alias="claimCode")


class ClaimCodeResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    order_id: UUID = Field(..., alias="orderId")
    claim_code: str = Field(..., alias="claimCode")
    status: str


class MemberDiscountSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    discounts: List[MemberDiscountResponse]
    stacked_percentage: float = Field(..., alias="stackedPercentage")
    confirmed_orders: int = Field(..., alias="confirmedOrders")
    milestone_threshold: int = Field(..., alias="milestoneThreshold")
    orders_until_milestone: int = Field(..., alias="ordersUntilMilestone")


@router.post("/orders", response_model=PlacedOrderResponse, status_code=status.HTTP_201_CREATED)
async def place_order(
    payload: CheckoutRequest,
    member: User = Depends(require_member),
    db: AsyncSession = Depends(get_session),
) -> PlacedOrderResponse:
    """Place an in-store pickup order and return its claim code."""
    service = CheckoutService(db)
    try:
        lines = [CheckoutLine(book_id=item.book_id, quantity=item.quantity) for item in payload.items]
        placed = await service.place_order(member.id, lines)
        order = await get_order_detail(db, placed.id)
        return PlacedOrderResponse(
            message="Order placed successfully",
            order=build_order_response(order),
            claim_code=order.claim_code,
        )
    except BookNotFoundError as exc:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except CheckoutError as exc:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Error placing order", member_id=str(member.id), error=str(e))
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to place order",
        )


@router.get("/orders", response_model=List[OrderResponse])
async def list_my_orders(
    member: User = Depends(require_member),
    db: AsyncSession = Depends(get_session),
) -> List[OrderResponse]:
    orders = await list_orders(db, member_id=member.id)
    return [build_order_response(order) for order in orders]


@router.get("/orders/{order_id}/claim-code", response_model=ClaimCodeResponse)
async def get_claim_code(
    order_id: UUID,
    member: User = Depends(require_member),
    db: AsyncSession = Depends(get_session),
) -> ClaimCodeResponse:
    """Return the claim code the member shows at the counter."""
    try:
        order = await get_order_detail(db, order_id, member_id=member.id)
    except OrderNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    return ClaimCodeResponse(order_id=order.id, claim_code=order.claim_code, status=order.status.value)


@router.get("/discounts", response_model=MemberDiscountSummary)
async def get_my_discounts(
    member: User = Depends(require_member),
    db: AsyncSession = Depends(get_session),
) -> MemberDiscountSummary:
    """Active discounts plus progress toward the order milestone."""
    evaluator = MilestoneDiscountEvaluator(db)
    discounts = await evaluator.list_active_discounts(member.id)
    confirmed = await evaluator.count_confirmed_orders(member.id)
    return MemberDiscountSummary(
        discounts=[build_discount_response(discount) for discount in discounts],
        stacked_percentage=float(evaluator.stacked_percentage(discounts)),
        confirmed_orders=confirmed,
        milestone_threshold=evaluator.threshold,
        orders_until_milestone=evaluator.orders_remaining(confirmed),
    )


@router.get("/notifications", response_model=List[NotificationResponse])
async def list_my_notifications(
    unread_only: bool = Query(False, alias="unreadOnly"),
    member: User = Depends(require_member),
    db: AsyncSession = Depends(get_session),
) -> List[NotificationResponse]:
    """Notification inbox, newest first."""
    service = NotificationService(db)
    notifications = await service.list_for_member(member.id, unread_only=unread_only)
    return [build_notification_response(notification) for notification in notifications]


@router.put("/notifications/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(
    notification_id: UUID,
    member: User = Depends(require_member),
    db: AsyncSession = Depends(get_session),
) -> NotificationResponse:
    service = NotificationService(db)
    try:
        notification = await service.mark_read(member.id, notification_id)
    except Exception as e:
        logger.exception("Error acknowledging notification", notification_id=str(notification_id), error=str(e))
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update notification",
        )
    if notification is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    return build_notification_response(notification)
