"""Domain errors raised by order checkout and fulfillment."""

from __future__ import annotations

from uuid import UUID

from pustak_api.models.order import OrderStatusEnum


class OrderStateError(RuntimeError):
    """Base exception for order workflow failures."""


class OrderNotFoundError(OrderStateError):
    """Raised when attempting to read or mutate a missing order."""

    def __init__(self, order_id: UUID | str) -> None:
        super().__init__(f"Order {order_id} not found")
        self.order_id = order_id


class InvalidClaimCodeError(OrderStateError):
    """Raised when a submitted claim code does not match the order's stored code."""

    def __init__(self, order_id: UUID | str) -> None:
        super().__init__("Invalid claim code")
        self.order_id = order_id


class InvalidOrderStateError(OrderStateError):
    """Raised when an order is not in a status that allows the requested operation."""

    def __init__(self, current_status: OrderStatusEnum, message: str = "Order is not pending") -> None:
        super().__init__(message)
        self.current_status = current_status


class UnknownOrderStatusError(OrderStateError):
    """Raised when a status override names a status that does not exist."""

    def __init__(self, value: str) -> None:
        super().__init__(f"Invalid status: {value}")
        self.value = value


class CheckoutError(OrderStateError):
    """Raised when a checkout request cannot be turned into an order."""


class BookNotFoundError(CheckoutError):
    """Raised when a checkout line references an unknown book."""

    def __init__(self, book_id: UUID | str) -> None:
        super().__init__(f"Book not found: {book_id}")
        self.book_id = book_id


class InsufficientStockError(CheckoutError):
    """Raised when a checkout line asks for more copies than are in stock."""

    def __init__(self, title: str, available: int, requested: int) -> None:
        super().__init__(
            f"Insufficient stock for book: {title}. Available: {available}, Requested: {requested}"
        )
        self.available = available
        self.requested = requested
