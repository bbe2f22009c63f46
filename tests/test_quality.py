"""Quality inspections: cumulative capacity, defect lines and the single in-flight session."""
from sqlalchemy import select

from factory.models import BatchStatus, DefectRecord, ProductionStage


def inspection(batch_id, window, quantity_in, defective=0, defects=None):
    return {
        "batch_id": str(batch_id),
        **window,
        "quantity_in": quantity_in,
        "defective_quantity": defective,
        "defects": defects or [],
    }


async def inspect(client, floor, payload):
    return await client.post(
        "/api/v1/quality/inspections",
        json=payload,
        headers=floor.operator("QUALITY_CHECK").headers(),
    )


TEN_DEFECTS = [
    {"defect_code": "OPEN_SEAM", "quantity": 6, "severity": "MAJOR", "stage": "STITCHING"},
    {"defect_code": "MISCUT", "quantity": 4, "severity": "CRITICAL", "stage": "CUTTING"},
]


class TestInspectionLedger:

    async def test_inspection_updates_ledger_immediately(self, client, floor, seed_batch, slot, load_batch):
        batch_id = await seed_batch(stage=ProductionStage.QUALITY_CHECK, status=BatchStatus.IN_PROGRESS)

        response = await inspect(client, floor, inspection(batch_id, slot(), 60, 10, TEN_DEFECTS))

        assert response.status_code == 201
        body = response.json()
        assert body["log"]["stage"] == "QUALITY_CHECK"
        assert body["log"]["approval_status"] == "PENDING"
        assert body["log"]["quantity_out"] == 50
        assert len(body["defects"]) == 2
        assert all(d["production_log_id"] == body["log"]["id"] for d in body["defects"])

        batch = await load_batch(batch_id)
        assert batch.usable_quantity == 50
        assert batch.defective_quantity == 10
        assert batch.current_stage == "QUALITY_CHECK"

    async def test_second_session_cannot_exceed_remaining(self, client, floor, seed_batch, slot, load_batch):
        batch_id = await seed_batch(stage=ProductionStage.QUALITY_CHECK, status=BatchStatus.IN_PROGRESS)
        await inspect(client, floor, inspection(batch_id, slot(), 60, 10, TEN_DEFECTS))

        response = await inspect(client, floor, inspection(batch_id, slot(), 50))

        # capacity is checked before the pending-session guard
        assert response.status_code == 400
        assert response.json()["remaining"] == 40
        assert response.json()["already_inspected"] == 60

        batch = await load_batch(batch_id)
        assert batch.usable_quantity == 50
        assert batch.defective_quantity == 10

    async def test_pending_session_blocks_another(self, client, floor, seed_batch, slot):
        batch_id = await seed_batch(stage=ProductionStage.QUALITY_CHECK, status=BatchStatus.IN_PROGRESS)
        first = await inspect(client, floor, inspection(batch_id, slot(), 60, 10, TEN_DEFECTS))

        blocked = await inspect(client, floor, inspection(batch_id, slot(), 30))
        assert blocked.status_code == 409
        assert blocked.json()["pending_log_id"] == first.json()["log"]["id"]

        await client.patch(
            f"/api/v1/approvals/production/{first.json()['log']['id']}/reject",
            json={"reason": "recount"},
            headers=floor.manager.headers(),
        )
        allowed = await inspect(client, floor, inspection(batch_id, slot(), 30))
        assert allowed.status_code == 201
        assert allowed.json()["batch"]["usable_quantity"] == 80

    async def test_pending_batch_starts_on_first_inspection(self, client, floor, seed_batch, slot, load_batch):
        batch_id = await seed_batch(stage=ProductionStage.QUALITY_CHECK, status=BatchStatus.PENDING)

        await inspect(client, floor, inspection(batch_id, slot(), 10))

        assert (await load_batch(batch_id)).status == "IN_PROGRESS"


class TestDefectLines:

    async def test_lines_must_add_up(self, client, floor, seed_batch, slot, session_factory):
        batch_id = await seed_batch(stage=ProductionStage.QUALITY_CHECK, status=BatchStatus.IN_PROGRESS)

        response = await inspect(client, floor, inspection(batch_id, slot(), 60, 12, TEN_DEFECTS))

        assert response.status_code == 400
        assert response.json()["expected"] == 12
        assert response.json()["received"] == 10
        async with session_factory() as session:
            assert (await session.execute(select(DefectRecord))).first() is None

    async def test_defective_cannot_exceed_inspected(self, client, floor, seed_batch, slot):
        batch_id = await seed_batch(stage=ProductionStage.QUALITY_CHECK, status=BatchStatus.IN_PROGRESS)

        response = await inspect(client, floor, inspection(batch_id, slot(), 5, 10, TEN_DEFECTS))

        assert response.status_code == 400

    async def test_unknown_severity_is_rejected(self, client, floor, seed_batch, slot):
        batch_id = await seed_batch(stage=ProductionStage.QUALITY_CHECK, status=BatchStatus.IN_PROGRESS)
        lines = [{"defect_code": "HOLE", "quantity": 1, "severity": "COSMIC"}]

        response = await inspect(client, floor, inspection(batch_id, slot(), 5, 1, lines))

        assert response.status_code == 400

    async def test_defects_cannot_originate_downstream(self, client, floor, seed_batch, slot):
        batch_id = await seed_batch(stage=ProductionStage.QUALITY_CHECK, status=BatchStatus.IN_PROGRESS)
        lines = [{"defect_code": "BAD_LABEL", "quantity": 1, "severity": "MINOR", "stage": "LABELING"}]

        response = await inspect(client, floor, inspection(batch_id, slot(), 5, 1, lines))

        assert response.status_code == 400


class TestInspectionPreconditions:

    async def test_batch_must_be_at_quality_check(self, client, floor, seed_batch, slot):
        batch_id = await seed_batch(stage=ProductionStage.STITCHING, status=BatchStatus.IN_PROGRESS, usable=100)

        response = await inspect(client, floor, inspection(batch_id, slot(), 10))

        assert response.status_code == 400
        assert response.json()["current_stage"] == "STITCHING"

    async def test_inspector_needs_quality_section(self, client, floor, seed_batch, slot):
        batch_id = await seed_batch(stage=ProductionStage.QUALITY_CHECK, status=BatchStatus.IN_PROGRESS)

        response = await client.post(
            "/api/v1/quality/inspections",
            json=inspection(batch_id, slot(), 10),
            headers=floor.operator("STITCHING").headers(),
        )

        assert response.status_code == 403

    async def test_closed_batch_is_rejected(self, client, floor, seed_batch, slot):
        batch_id = await seed_batch(stage=ProductionStage.QUALITY_CHECK, status=BatchStatus.CANCELLED)

        response = await inspect(client, floor, inspection(batch_id, slot(), 10))

        assert response.status_code == 400
