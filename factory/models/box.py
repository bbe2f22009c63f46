import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import String, DateTime, ForeignKey, Integer, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from factory.database import Base
from factory.db_types import UUIDType, enum_column


class BoxStatus(str, Enum):
    """Shipping status, forward-only in this order."""
    PACKED = "PACKED"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"


class Box(Base):
    """
    Shipping unit created when a batch finishes PACKING.

    The unique constraint on batch_id is what guarantees a single box per
    batch when two approvals race.
    """
    __tablename__ = "boxes"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_box_quantity_non_negative"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    box_code: Mapped[str] = mapped_column(String(80), unique=True, nullable=False, index=True)
    batch_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("batches.id", ondelete="CASCADE"),
        unique=True,
        nullable=False
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = enum_column(BoxStatus, BoxStatus.PACKED, index=True)
    shipped_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    delivered_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )
