import uuid
from enum import Enum
from typing import Optional

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from factory.database import Base
from factory.db_types import UUIDType, enum_column


class MachineStatus(str, Enum):
    OPERATIONAL = "OPERATIONAL"
    MAINTENANCE = "MAINTENANCE"
    OUT_OF_SERVICE = "OUT_OF_SERVICE"


class Machine(Base):
    """Shop-floor machine a production log may reference."""
    __tablename__ = "machines"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    machine_code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    name: Mapped[Optional[str]] = mapped_column(String(150), nullable=True)
    stage: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    status: Mapped[str] = enum_column(MachineStatus, MachineStatus.OPERATIONAL)

    @property
    def is_operational(self) -> bool:
        return self.status == MachineStatus.OPERATIONAL.value
