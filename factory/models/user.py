import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List

from sqlalchemy import String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from factory.database import Base
from factory.db_types import UUIDType, enum_column


class UserRoleType(str, Enum):
    """Roles carried in the authorization context."""
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    OPERATOR = "OPERATOR"


class AccountStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class VerificationStatus(str, Enum):
    """Operators must be VERIFIED by their manager before logging work."""
    PENDING = "PENDING"
    VERIFIED = "VERIFIED"


class User(Base):
    """
    Factory staff member.

    Account bookkeeping lives in the user-management service; the production
    core reads this table for verification status and the ownership chain
    (the manager who created an operator owns that operator's work).
    """
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    employee_code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    full_name: Mapped[str] = mapped_column(String(150), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), unique=True, nullable=True)

    role: Mapped[str] = enum_column(UserRoleType, index=True)
    status: Mapped[str] = enum_column(AccountStatus, AccountStatus.ACTIVE)
    verification_status: Mapped[str] = enum_column(VerificationStatus, VerificationStatus.PENDING)

    # Ownership chain: manager who created this operator
    created_by_user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    section_assignments: Mapped[List["SectionAssignment"]] = relationship(
        "SectionAssignment",
        back_populates="user",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def sections(self) -> List[str]:
        """Stages this user is assigned to."""
        return [sa.stage for sa in self.section_assignments]

    @property
    def is_verified(self) -> bool:
        return self.verification_status == VerificationStatus.VERIFIED.value

    @property
    def is_active(self) -> bool:
        return self.status == AccountStatus.ACTIVE.value

    def __repr__(self) -> str:
        return f"<User(code='{self.employee_code}', role='{self.role}')>"


class SectionAssignment(Base):
    """Assignment of a user to a production stage (section)."""
    __tablename__ = "section_assignments"
    __table_args__ = (
        UniqueConstraint("user_id", "stage", name="uq_section_assignment_user_stage"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    stage: Mapped[str] = mapped_column(String(50), nullable=False)

    user: Mapped["User"] = relationship("User", back_populates="section_assignments")
