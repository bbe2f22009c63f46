import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import String, DateTime, ForeignKey, Integer, Text, CheckConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column

from factory.database import Base
from factory.db_types import UUIDType, enum_column
from factory.models.production_log import ApprovalStatus


class ReworkRecord(Base):
    """
    One rework session against a batch's defective pool.

    Creating a record never touches the batch ledger; the cured/scrapped
    split is applied only when a manager approves it.
    """
    __tablename__ = "rework_records"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_rework_quantity_positive"),
        CheckConstraint(
            "cured_quantity >= 0 AND scrapped_quantity >= 0",
            name="ck_rework_split_non_negative"
        ),
        CheckConstraint(
            "cured_quantity + scrapped_quantity = quantity",
            name="ck_rework_split_matches_quantity"
        ),
        Index("ix_rework_records_batch_stage_status", "batch_id", "rework_stage", "approval_status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    batch_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("batches.id", ondelete="CASCADE"),
        nullable=False
    )
    operator_user_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("users.id"),
        nullable=False,
        index=True
    )
    # Owning manager of the operator at creation time
    managed_by_user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )

    rework_stage: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="CUTTING, STITCHING"
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    cured_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    scrapped_quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    approval_status: Mapped[str] = enum_column(ApprovalStatus, ApprovalStatus.PENDING)
    approved_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    rejected_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )
    rejected_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    @property
    def is_pending(self) -> bool:
        return self.approval_status == ApprovalStatus.PENDING.value
