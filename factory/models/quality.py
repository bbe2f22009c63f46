"""
Quality Models.

DefectRecord is an append-only ledger of defects discovered during quality
inspection. Records are created together with the inspection's production
log and are never updated or deleted.
"""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import String, DateTime, ForeignKey, Integer, CheckConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column

from factory.database import Base
from factory.db_types import UUIDType, enum_column


class DefectSeverity(str, Enum):
    """Severity of defects."""
    MINOR = "MINOR"         # Cosmetic
    MAJOR = "MAJOR"         # Affects function or fit
    CRITICAL = "CRITICAL"   # Unsellable


class DefectRecord(Base):
    __tablename__ = "defect_records"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_defect_quantity_positive"),
        Index("ix_defect_records_batch_stage", "batch_id", "stage"),
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
    # Stage the defect originated from (CUTTING, STITCHING or QUALITY_CHECK)
    stage: Mapped[str] = mapped_column(String(50), nullable=False)
    defect_code: Mapped[str] = mapped_column(String(50), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    severity: Mapped[str] = enum_column(DefectSeverity)

    production_log_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("production_logs.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    detected_by_user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
