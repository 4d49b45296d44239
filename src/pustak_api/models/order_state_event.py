"""Order state transition audit log models."""

from __future__ import annotations

from enum import Enum
from uuid import uuid4

from sqlalchemy import Column, DateTime, Enum as SqlEnum, ForeignKey, JSON, String, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from pustak_api.db.base import Base


class OrderStateEventTypeEnum(str, Enum):
    """Supported order timeline event categories."""

    STATE_CHANGE = "state_change"
    CLAIM_REJECTED = "claim_rejected"


class OrderStateEvent(Base):
    """Audit log entry for every status transition and rejected pickup attempt."""

    __tablename__ = "order_state_events"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    order_id = Column(UUID(as_uuid=True), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    event_type = Column(
        SqlEnum(OrderStateEventTypeEnum, name="order_state_event_type_enum"),
        nullable=False,
    )
    actor_id = Column(String(255), nullable=True)
    from_status = Column(String(32), nullable=True)
    to_status = Column(String(32), nullable=True)
    notes = Column(Text, nullable=True)
    metadata_json = Column("metadata", JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    order = relationship("Order", back_populates="state_events")
