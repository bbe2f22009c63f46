"""
Pytest fixtures for the production tracker test suite.

Provides:
- An in-memory SQLite database per test (aiosqlite + StaticPool)
- The FastAPI app wired to that database and to a RecordingEventPublisher
- A small factory floor: admin, managers and verified operators with tokens
- Helpers to seed batches directly at any stage
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")

import itertools
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from factory.core.context import AuthContext
from factory.core.security import create_access_token
from factory.database import Base, get_db
from factory.main import app as fastapi_app
from factory.models import (
    Batch,
    BatchStatus,
    Machine,
    MachineStatus,
    ProductionStage,
    SectionAssignment,
    User,
    UserRoleType,
    VerificationStatus,
)
from factory.services.events import RecordingEventPublisher


WORKING_STAGES = ["CUTTING", "STITCHING", "QUALITY_CHECK", "LABELING", "FOLDING", "PACKING"]

SHIFT_START = datetime(2026, 3, 2, 6, 0, tzinfo=timezone.utc)


# =============================================================================
# Database
# =============================================================================

@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def db(session_factory):
    """Session for calling services directly."""
    async with session_factory() as session:
        yield session


# =============================================================================
# App
# =============================================================================

@pytest.fixture
def publisher():
    return RecordingEventPublisher()


@pytest.fixture
async def client(session_factory, publisher):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    fastapi_app.dependency_overrides[get_db] = override_get_db
    previous_publisher = fastapi_app.state.event_publisher
    fastapi_app.state.event_publisher = publisher

    async with AsyncClient(transport=ASGITransport(app=fastapi_app), base_url="http://test") as ac:
        yield ac

    fastapi_app.dependency_overrides.clear()
    fastapi_app.state.event_publisher = previous_publisher


# =============================================================================
# Factory floor
# =============================================================================

@dataclass
class Person:
    id: uuid.UUID
    role: str
    sections: List[str] = field(default_factory=list)

    @property
    def ctx(self) -> AuthContext:
        return AuthContext(user_id=self.id, role=self.role, sections=list(self.sections))

    def token(self, sections: Optional[List[str]] = None) -> str:
        return create_access_token(
            self.id,
            self.role,
            sections=self.sections if sections is None else sections,
        )

    def headers(self, sections: Optional[List[str]] = None) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token(sections)}"}


@dataclass
class Floor:
    admin: Person
    manager: Person
    other_manager: Person
    operators: Dict[str, Person]
    unverified_operator: Person
    machines: Dict[str, uuid.UUID]
    broken_machine: uuid.UUID

    def operator(self, stage: str) -> Person:
        return self.operators[stage]


async def add_user(
    session: AsyncSession,
    code: str,
    role: UserRoleType,
    sections: List[str],
    created_by: Optional[uuid.UUID] = None,
    verified: bool = True,
) -> Person:
    user = User(
        employee_code=code,
        full_name=code.title(),
        role=role.value,
        verification_status=(VerificationStatus.VERIFIED if verified else VerificationStatus.PENDING).value,
        created_by_user_id=created_by,
    )
    session.add(user)
    await session.flush()
    for stage in sections:
        session.add(SectionAssignment(user_id=user.id, stage=stage))
    return Person(id=user.id, role=role.value, sections=list(sections))


@pytest.fixture
async def floor(session_factory) -> Floor:
    async with session_factory() as session:
        admin = await add_user(session, "ADM-01", UserRoleType.ADMIN, [])
        manager = await add_user(session, "MGR-01", UserRoleType.MANAGER, WORKING_STAGES, created_by=admin.id)
        other_manager = await add_user(session, "MGR-02", UserRoleType.MANAGER, WORKING_STAGES, created_by=admin.id)

        operators = {}
        for stage in WORKING_STAGES:
            operators[stage] = await add_user(
                session, f"OP-{stage}", UserRoleType.OPERATOR, [stage], created_by=manager.id
            )
        unverified = await add_user(
            session, "OP-NEW", UserRoleType.OPERATOR, ["CUTTING"], created_by=manager.id, verified=False
        )

        machines = {}
        for stage in ["CUTTING", "STITCHING", "LABELING", "FOLDING", "PACKING"]:
            machine = Machine(machine_code=f"MC-{stage}", name=stage.title(), stage=stage)
            session.add(machine)
            await session.flush()
            machines[stage] = machine.id

        broken = Machine(
            machine_code="MC-BROKEN",
            name="Broken press",
            stage="CUTTING",
            status=MachineStatus.MAINTENANCE.value,
        )
        session.add(broken)
        await session.flush()
        broken_id = broken.id

        await session.commit()

    return Floor(
        admin=admin,
        manager=manager,
        other_manager=other_manager,
        operators=operators,
        unverified_operator=unverified,
        machines=machines,
        broken_machine=broken_id,
    )


# =============================================================================
# Batches & time windows
# =============================================================================

@pytest.fixture
def seed_batch(session_factory, floor):
    """Create a batch directly at any stage with any ledger."""
    numbers = itertools.count(1)

    async def _seed(
        total: int = 100,
        stage: ProductionStage = ProductionStage.CUTTING,
        status: BatchStatus = BatchStatus.PENDING,
        usable: int = 0,
        defective: int = 0,
        scrapped: int = 0,
    ) -> uuid.UUID:
        async with session_factory() as session:
            batch = Batch(
                batch_number=f"B-{next(numbers):04d}",
                label="Cotton crew tee",
                total_quantity=total,
                usable_quantity=usable,
                defective_quantity=defective,
                scrapped_quantity=scrapped,
                current_stage=stage.value,
                status=status.value,
                created_by_user_id=floor.admin.id,
            )
            session.add(batch)
            await session.commit()
            return batch.id

    return _seed


@pytest.fixture
def load_batch(session_factory):
    async def _load(batch_id: uuid.UUID) -> Batch:
        async with session_factory() as session:
            return await session.get(Batch, batch_id)

    return _load


@pytest.fixture
def slot():
    """Successive non-overlapping one-hour work windows, as ISO strings."""
    counter = itertools.count()

    def _slot() -> Dict[str, str]:
        start = SHIFT_START + timedelta(hours=next(counter))
        end = start + timedelta(minutes=50)
        return {"start_time": start.isoformat(), "end_time": end.isoformat()}

    return _slot


@pytest.fixture
def add_operator(session_factory, floor):
    """Add another verified operator owned by floor.manager."""
    async def _add(code: str, sections: List[str]) -> Person:
        async with session_factory() as session:
            person = await add_user(session, code, UserRoleType.OPERATOR, sections, created_by=floor.manager.id)
            await session.commit()
        return person

    return _add
