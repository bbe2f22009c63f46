"""
Batch Model.

A batch is one unit of work flowing through the production pipeline.
Its quantity ledger is made of four columns:
- total_quantity: fixed at creation
- usable_quantity, defective_quantity, scrapped_quantity: mutated only by
  the ledger rules in factory.services.quantity_ledger
"""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import String, DateTime, ForeignKey, Integer, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from factory.database import Base
from factory.db_types import UUIDType, enum_column


class ProductionStage(str, Enum):
    """Production stages (sections) in pipeline order."""
    CUTTING = "CUTTING"
    STITCHING = "STITCHING"
    QUALITY_CHECK = "QUALITY_CHECK"
    REWORK = "REWORK"               # Ordering slot only, never a batch's current stage
    LABELING = "LABELING"
    FOLDING = "FOLDING"
    PACKING = "PACKING"


class BatchStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class Batch(Base):
    __tablename__ = "batches"
    __table_args__ = (
        CheckConstraint("total_quantity > 0", name="ck_batch_total_positive"),
        CheckConstraint(
            "usable_quantity >= 0 AND defective_quantity >= 0 AND scrapped_quantity >= 0",
            name="ck_batch_quantities_non_negative"
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    batch_number: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
        index=True
    )
    label: Mapped[str] = mapped_column(String(200), nullable=False)

    # Quantity ledger
    total_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    usable_quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    defective_quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    scrapped_quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    current_stage: Mapped[str] = enum_column(ProductionStage, ProductionStage.CUTTING, index=True)
    status: Mapped[str] = enum_column(BatchStatus, BatchStatus.PENDING, index=True)

    created_by_user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

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

    @property
    def is_closed(self) -> bool:
        """COMPLETED and CANCELLED batches accept no further mutations."""
        return self.status in (BatchStatus.COMPLETED.value, BatchStatus.CANCELLED.value)

    def __repr__(self) -> str:
        return f"<Batch(number='{self.batch_number}', stage='{self.current_stage}', status='{self.status}')>"
