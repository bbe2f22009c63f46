"""Seed a local factory: staff with section assignments, one machine per stage, and bearer tokens."""
import asyncio

from sqlalchemy import select

from factory.core.security import create_access_token
from factory.database import async_session_factory, init_db
from factory.models import (
    User,
    SectionAssignment,
    Machine,
    MachineStatus,
    ProductionStage,
    UserRoleType,
    VerificationStatus,
)
from factory.services.stage_pipeline import STAGE_ORDER, ORDERING_ONLY_STAGES


WORKING_STAGES = [s.value for s in STAGE_ORDER if s not in ORDERING_ONLY_STAGES]

# Each manager owns the operators of the stages they supervise
MANAGERS = [
    {"code": "MGR-01", "name": "Front Line Manager", "stages": ["CUTTING", "STITCHING", "QUALITY_CHECK"]},
    {"code": "MGR-02", "name": "Finishing Manager", "stages": ["LABELING", "FOLDING", "PACKING"]},
]

OPERATORS_PER_STAGE = 2


async def seed_staff(db) -> list[tuple[User, list[str]]]:
    """Create the staff; returns each user with the sections they were assigned."""
    print("\n" + "=" * 60)
    print("SEEDING STAFF")
    print("=" * 60)

    existing = await db.execute(select(User).where(User.employee_code == "ADM-01"))
    if existing.scalar_one_or_none():
        print("Staff already seeded. Skipping...")
        return []

    admin = User(
        employee_code="ADM-01",
        full_name="Plant Administrator",
        role=UserRoleType.ADMIN.value,
        verification_status=VerificationStatus.VERIFIED.value,
    )
    db.add(admin)
    await db.flush()
    print(f"  + {admin.employee_code}: {admin.full_name}")
    created = [(admin, [])]

    for entry in MANAGERS:
        manager = User(
            employee_code=entry["code"],
            full_name=entry["name"],
            role=UserRoleType.MANAGER.value,
            verification_status=VerificationStatus.VERIFIED.value,
            created_by_user_id=admin.id,
        )
        db.add(manager)
        await db.flush()
        for stage in entry["stages"]:
            db.add(SectionAssignment(user_id=manager.id, stage=stage))
        created.append((manager, list(entry["stages"])))
        print(f"  + {manager.employee_code}: {manager.full_name} ({', '.join(entry['stages'])})")

        for stage in entry["stages"]:
            for n in range(1, OPERATORS_PER_STAGE + 1):
                operator = User(
                    employee_code=f"OP-{stage[:4]}-{n:02d}",
                    full_name=f"{stage.replace('_', ' ').title()} Operator {n}",
                    role=UserRoleType.OPERATOR.value,
                    verification_status=VerificationStatus.VERIFIED.value,
                    created_by_user_id=manager.id,
                )
                db.add(operator)
                await db.flush()
                db.add(SectionAssignment(user_id=operator.id, stage=stage))
                created.append((operator, [stage]))
                print(f"    + {operator.employee_code}: {operator.full_name}")

    return created


async def seed_machines(db) -> None:
    print("\n" + "=" * 60)
    print("SEEDING MACHINES")
    print("=" * 60)

    existing = await db.execute(select(Machine).limit(1))
    if existing.scalar_one_or_none():
        print("Machines already exist. Skipping...")
        return

    for stage in WORKING_STAGES:
        if stage == ProductionStage.QUALITY_CHECK.value:
            continue
        machine = Machine(
            machine_code=f"MC-{stage[:4]}-01",
            name=f"{stage.title()} station 1",
            stage=stage,
            status=MachineStatus.OPERATIONAL.value,
        )
        db.add(machine)
        print(f"  + {machine.machine_code} ({stage})")


async def main():
    await init_db()

    async with async_session_factory() as db:
        staff = await seed_staff(db)
        await seed_machines(db)
        await db.commit()

    if staff:
        print("\n" + "=" * 60)
        print("BEARER TOKENS")
        print("=" * 60)
        for user, sections in staff:
            token = create_access_token(user.id, user.role, sections=sections)
            print(f"{user.employee_code:<16} {user.role:<9} {token}")

    print("\nSeeding complete.")


if __name__ == "__main__":
    asyncio.run(main())
