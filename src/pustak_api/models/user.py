from enum import Enum
from uuid import uuid4

from sqlalchemy import Column, DateTime, String, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from pustak_api.db.base import Base


class UserRoleEnum(str, Enum):
    MEMBER = "member"
    STAFF = "staff"
    ADMIN = "admin"


class User(Base):
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    email = Column(String, nullable=False, unique=True, index=True)
    full_name = Column(String, nullable=True)
    role = Column(String(length=16), nullable=False, default=UserRoleEnum.MEMBER.value, server_default=UserRoleEnum.MEMBER.value)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    discounts = relationship(
        "MemberDiscount",
        back_populates="member",
        cascade="all, delete-orphan",
        order_by="MemberDiscount.applied_at",
    )
