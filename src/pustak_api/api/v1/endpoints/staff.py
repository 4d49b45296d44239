"""Counter staff endpoints: pickup verification and status overrides."""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from pustak_api.api.dependencies.session import require_staff
from pustak_api.db.session import get_session
from pustak_api.models.user import User
from pustak_api.schemas.order import (
    MemberDiscountResponse,
    OrderResponse,
    OrderStateEventResponse,
    build_discount_response,
    build_event_response,
    build_order_response,
)
from pustak_api.services.orders.history import get_order_detail, list_orders
from pustak_api.services.orders.state_machine import (
    InvalidClaimCodeError,
    InvalidOrderStateError,
    OrderNotFoundError,
    OrderStateMachine,
    UnknownOrderStatusError,
)


router = APIRouter(prefix="/staff/orders", tags=["Staff"])


class ProcessOrderRequest(BaseModel):
    """Claim code presented by the member at the counter."""
    model_config = ConfigDict(populate_by_name=True)

    claim_code: str = Field(..., alias="claimCode", description="Claim code issued at checkout")


class ProcessOrderResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    order: OrderResponse
    milestone_discount: Optional[MemberDiscountResponse] = Field(None, alias="milestoneDiscount")


class OrderStatusUpdate(BaseModel):
    """Request model for a staff status override."""
    status: str = Field(..., description="New order status (Pending, Confirmed, Cancelled)")


class OrderStatusUpdateResponse(BaseModel):
    message: str
    order: OrderResponse


@router.get("", response_model=List[OrderResponse])
async def list_all_orders(
    staff: User = Depends(require_staff),
    db: AsyncSession = Depends(get_session),
) -> List[OrderResponse]:
    """List every order, newest first, with member and processing staff names."""
    try:
        orders = await list_orders(db)
        return [build_order_response(order) for order in orders]
    except Exception as e:
        logger.error("Error listing orders", error=str(e), staff_id=str(staff.id))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve orders",
        )


@router.put("/{order_id}/process", response_model=ProcessOrderResponse)
async def process_order(
    order_id: UUID,
    payload: ProcessOrderRequest,
    staff: User = Depends(require_staff),
    db: AsyncSession = Depends(get_session),
) -> ProcessOrderResponse:
    """Verify the claim code and confirm a pending order."""
    machine = OrderStateMachine(db)
    try:
        result = await machine.process_order(order_id, payload.claim_code, staff.id)
        order = await get_order_detail(db, result.order.id)
        milestone = result.milestone
        return ProcessOrderResponse(
            message="Order processed successfully",
            order=build_order_response(order),
            milestone_discount=build_discount_response(milestone.discount) if milestone else None,
        )
    except OrderNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    except (InvalidClaimCodeError, InvalidOrderStateError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Error processing order", order_id=str(order_id), staff_id=str(staff.id), error=str(e))
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to process order",
        )


@router.put("/{order_id}/status", response_model=OrderStatusUpdateResponse)
async def update_order_status(
    order_id: UUID,
    payload: OrderStatusUpdate,
    staff: User = Depends(require_staff),
    db: AsyncSession = Depends(get_session),
) -> OrderStatusUpdateResponse:
    """Override an order's status without claim verification."""
    machine = OrderStateMachine(db)
    try:
        updated = await machine.update_status(order_id, payload.status, staff.id)
        order = await get_order_detail(db, updated.id)
        return OrderStatusUpdateResponse(
            message="Order status updated successfully",
            order=build_order_response(order),
        )
    except OrderNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    except (UnknownOrderStatusError, InvalidOrderStateError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Error updating order status", order_id=str(order_id), staff_id=str(staff.id), error=str(e))
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update order status",
        )


@router.get("/{order_id}/state-events", response_model=List[OrderStateEventResponse])
async def list_order_state_events(
    order_id: UUID,
    staff: User = Depends(require_staff),
    db: AsyncSession = Depends(get_session),
) -> List[OrderStateEventResponse]:
    """Chronological audit trail for an order, including rejected pickup attempts."""
    machine = OrderStateMachine(db)
    try:
        events = await machine.list_events(order_id)
    except OrderNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    return [build_event_response(event) for event in events]
