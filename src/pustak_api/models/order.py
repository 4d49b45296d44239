from enum import Enum
from uuid import uuid4

from sqlalchemy import Column, DateTime, Enum as SqlEnum, ForeignKey, Integer, Numeric, String, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship, validates

from pustak_api.db.base import Base


class OrderStatusEnum(str, Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    CANCELLED = "Cancelled"

    @classmethod
    def parse(cls, value: str) -> "OrderStatusEnum":
        """Resolve a status label case-insensitively ("confirmed", "CONFIRMED", ...)."""

        normalized = (value or "").strip().lower()
        for member in cls:
            if member.value.lower() == normalized:
                return member
        raise ValueError(f"Invalid status: {value}")


class Order(Base):
    __tablename__ = "orders"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    member_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(
        SqlEnum(OrderStatusEnum, name="order_status_enum"),
        nullable=False,
        default=OrderStatusEnum.PENDING,
        server_default=OrderStatusEnum.PENDING.name,
        index=True,
    )
    claim_code = Column(String(32), nullable=False)
    total_amount = Column(Numeric(12, 2), nullable=False, default=0, server_default="0")
    discount_applied = Column(Numeric(12, 2), nullable=False, default=0, server_default="0")
    processed_by_staff_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    order_date = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")
    member = relationship("User", foreign_keys=[member_id])
    processed_by_staff = relationship("User", foreign_keys=[processed_by_staff_id])
    state_events = relationship("OrderStateEvent", back_populates="order", cascade="all, delete-orphan")

    @validates("claim_code")
    def _freeze_claim_code(self, key: str, value: str) -> str:
        current = self.__dict__.get(key)
        if current is not None and current != value:
            raise ValueError("Claim code is assigned once at creation and cannot change")
        return value


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    order_id = Column(UUID(as_uuid=True), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    book_id = Column(UUID(as_uuid=True), ForeignKey("books.id", ondelete="SET NULL"), nullable=True)
    book_title = Column(String, nullable=False)
    quantity = Column(Integer, nullable=False, default=1, server_default="1")
    unit_price = Column(Numeric(12, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    order = relationship("Order", back_populates="items")
