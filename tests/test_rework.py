"""Rework accounting: derived pool, no ledger change until approval."""
from sqlalchemy import select

from factory.models import BatchStatus, ProductionLog, ProductionStage


async def batch_with_stitching_defects(client, floor, seed_batch, slot, defects=10):
    """Inspect a whole batch of 100 and find `defects` stitching defects."""
    batch_id = await seed_batch(stage=ProductionStage.QUALITY_CHECK, status=BatchStatus.IN_PROGRESS)
    response = await client.post(
        "/api/v1/quality/inspections",
        json={
            "batch_id": str(batch_id),
            **slot(),
            "quantity_in": 100,
            "defective_quantity": defects,
            "defects": [
                {"defect_code": "OPEN_SEAM", "quantity": defects, "severity": "MAJOR", "stage": "STITCHING"},
            ],
        },
        headers=floor.operator("QUALITY_CHECK").headers(),
    )
    assert response.status_code == 201
    return batch_id


async def request_rework(client, operator, batch_id, window, quantity, cured, scrapped, stage="STITCHING"):
    return await client.post(
        "/api/v1/rework",
        json={
            "batch_id": str(batch_id),
            "rework_stage": stage,
            "quantity": quantity,
            "cured_quantity": cured,
            "scrapped_quantity": scrapped,
            **window,
        },
        headers=operator.headers(),
    )


async def availability(client, floor, batch_id, stage="STITCHING"):
    response = await client.get(
        "/api/v1/rework/availability",
        params={"batch_id": str(batch_id), "rework_stage": stage},
        headers=floor.manager.headers(),
    )
    assert response.status_code == 200
    return response.json()


class TestReworkLifecycle:

    async def test_rework_only_touches_ledger_on_approval(self, client, floor, seed_batch, slot, load_batch):
        batch_id = await batch_with_stitching_defects(client, floor, seed_batch, slot)
        stitcher = floor.operator("STITCHING")

        created = await request_rework(client, stitcher, batch_id, slot(), 5, 3, 2)

        assert created.status_code == 201
        assert created.json()["approval_status"] == "PENDING"
        assert created.json()["managed_by_user_id"] == str(floor.manager.id)
        batch = await load_batch(batch_id)
        assert (batch.usable_quantity, batch.defective_quantity, batch.scrapped_quantity) == (90, 10, 0)
        assert (await availability(client, floor, batch_id))["available_for_rework"] == 5

        approved = await client.patch(
            f"/api/v1/approvals/rework/{created.json()['id']}/approve",
            headers=floor.manager.headers(),
        )

        assert approved.status_code == 200
        batch = await load_batch(batch_id)
        assert batch.usable_quantity == 93
        assert batch.scrapped_quantity == 2
        assert batch.defective_quantity == 5
        assert batch.usable_quantity + batch.defective_quantity + batch.scrapped_quantity == batch.total_quantity
        assert batch.current_stage == "QUALITY_CHECK"

        pool = await availability(client, floor, batch_id)
        assert pool["available_for_rework"] == 5
        assert pool["approved_rework"] == 5
        assert pool["pending_rework"] == 0

    async def test_request_beyond_pool_is_rejected(self, client, floor, seed_batch, slot):
        batch_id = await batch_with_stitching_defects(client, floor, seed_batch, slot)
        stitcher = floor.operator("STITCHING")
        await request_rework(client, stitcher, batch_id, slot(), 8, 8, 0)

        response = await request_rework(client, stitcher, batch_id, slot(), 3, 3, 0)

        assert response.status_code == 400
        assert response.json()["available_for_rework"] == 2
        assert response.json()["requested"] == 3

    async def test_rejection_returns_quantity_to_pool(self, client, floor, seed_batch, slot, load_batch):
        batch_id = await batch_with_stitching_defects(client, floor, seed_batch, slot)
        created = await request_rework(client, floor.operator("STITCHING"), batch_id, slot(), 10, 6, 4)

        rejected = await client.patch(
            f"/api/v1/approvals/rework/{created.json()['id']}/reject",
            json={"reason": "not reworkable"},
            headers=floor.manager.headers(),
        )

        assert rejected.status_code == 200
        assert rejected.json()["approval_status"] == "REJECTED"
        assert rejected.json()["rejection_reason"] == "not reworkable"
        assert (await availability(client, floor, batch_id))["available_for_rework"] == 10
        batch = await load_batch(batch_id)
        assert (batch.usable_quantity, batch.defective_quantity, batch.scrapped_quantity) == (90, 10, 0)

    async def test_scrapped_units_cannot_be_inspected_again(
        self, client, floor, seed_batch, slot, load_batch, session_factory
    ):
        batch_id = await batch_with_stitching_defects(client, floor, seed_batch, slot)
        async with session_factory() as session:
            qc_log = (
                await session.execute(select(ProductionLog).where(ProductionLog.batch_id == batch_id))
            ).scalar_one()
        rejected = await client.patch(
            f"/api/v1/approvals/production/{qc_log.id}/reject",
            json={"reason": "re-inspect after rework"},
            headers=floor.manager.headers(),
        )
        assert rejected.status_code == 200
        created = await request_rework(client, floor.operator("STITCHING"), batch_id, slot(), 10, 5, 5)
        approved = await client.patch(
            f"/api/v1/approvals/rework/{created.json()['id']}/approve",
            headers=floor.manager.headers(),
        )
        assert approved.status_code == 200
        batch = await load_batch(batch_id)
        assert (batch.usable_quantity, batch.defective_quantity, batch.scrapped_quantity) == (95, 0, 5)

        summary = await client.get(
            f"/api/v1/batches/{batch_id}/quality-summary",
            headers=floor.manager.headers(),
        )
        assert summary.json()["remaining_capacity"] == 0

        response = await client.post(
            "/api/v1/quality/inspections",
            json={"batch_id": str(batch_id), **slot(), "quantity_in": 5, "defective_quantity": 0, "defects": []},
            headers=floor.operator("QUALITY_CHECK").headers(),
        )

        assert response.status_code == 400
        assert response.json()["remaining"] == 0
        batch = await load_batch(batch_id)
        assert (batch.usable_quantity, batch.defective_quantity, batch.scrapped_quantity) == (95, 0, 5)


class TestReworkValidation:

    async def test_split_must_match_quantity(self, client, floor, seed_batch, slot):
        batch_id = await batch_with_stitching_defects(client, floor, seed_batch, slot)

        response = await request_rework(client, floor.operator("STITCHING"), batch_id, slot(), 5, 3, 1)

        assert response.status_code == 400

    async def test_quality_defects_are_not_reworkable(self, client, floor, seed_batch, slot):
        batch_id = await batch_with_stitching_defects(client, floor, seed_batch, slot)

        response = await request_rework(
            client, floor.operator("QUALITY_CHECK"), batch_id, slot(), 1, 1, 0, stage="QUALITY_CHECK"
        )

        assert response.status_code == 400

    async def test_operator_must_belong_to_rework_stage(self, client, floor, seed_batch, slot):
        batch_id = await batch_with_stitching_defects(client, floor, seed_batch, slot)

        response = await request_rework(client, floor.operator("CUTTING"), batch_id, slot(), 2, 2, 0)

        assert response.status_code == 403

    async def test_rework_overlapping_a_log_conflicts(self, client, floor, seed_batch, slot):
        stitching_batch = await seed_batch(stage=ProductionStage.STITCHING, status=BatchStatus.IN_PROGRESS, usable=100)
        batch_id = await batch_with_stitching_defects(client, floor, seed_batch, slot)
        stitcher = floor.operator("STITCHING")
        window = slot()

        logged = await client.post(
            "/api/v1/production/logs",
            json={"batch_id": str(stitching_batch), **window, "quantity_in": 100, "quantity_out": 100},
            headers=stitcher.headers(),
        )
        response = await request_rework(client, stitcher, batch_id, window, 2, 2, 0)

        assert logged.status_code == 201
        assert response.status_code == 409

    async def test_closed_batch_is_rejected(self, client, floor, seed_batch, slot):
        batch_id = await batch_with_stitching_defects(client, floor, seed_batch, slot)
        await client.post(f"/api/v1/batches/{batch_id}/cancel", headers=floor.admin.headers())

        response = await request_rework(client, floor.operator("STITCHING"), batch_id, slot(), 2, 2, 0)

        assert response.status_code == 400

    async def test_availability_for_unknown_batch(self, client, floor):
        response = await client.get(
            "/api/v1/rework/availability",
            params={"batch_id": "00000000-0000-0000-0000-000000000000", "rework_stage": "CUTTING"},
            headers=floor.manager.headers(),
        )

        assert response.status_code == 404
