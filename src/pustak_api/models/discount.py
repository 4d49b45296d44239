"""Member-scoped discount rewards."""

from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, func, true
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from pustak_api.db.base import Base


class MemberDiscount(Base):
    """Discount granted to a single member, e.g. the lifetime order milestone reward."""

    __tablename__ = "member_discounts"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    member_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    percentage = Column(Numeric(5, 2), nullable=False)
    is_stackable = Column(Boolean, nullable=False, default=True, server_default=true())
    is_active = Column(Boolean, nullable=False, default=True, server_default=true())
    milestone = Column(Integer, nullable=True)
    source_order_id = Column(UUID(as_uuid=True), ForeignKey("orders.id", ondelete="SET NULL"), nullable=True)
    applied_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    member = relationship("User", back_populates="discounts")
