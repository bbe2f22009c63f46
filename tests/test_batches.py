"""Batch intake, lookup, cancellation and quality summary."""
from factory.models import BatchStatus, ProductionStage


class TestCreateBatch:

    async def test_new_batch_starts_at_cutting_with_empty_ledger(self, client, floor):
        response = await client.post(
            "/api/v1/batches",
            json={"batch_number": "B-100", "label": "Polo shirts", "total_quantity": 100},
            headers=floor.admin.headers(),
        )

        assert response.status_code == 201
        body = response.json()
        assert body["total_quantity"] == 100
        assert body["usable_quantity"] == 0
        assert body["defective_quantity"] == 0
        assert body["scrapped_quantity"] == 0
        assert body["current_stage"] == "CUTTING"
        assert body["status"] == "PENDING"

    async def test_duplicate_batch_number_conflicts(self, client, floor):
        payload = {"batch_number": "B-DUP", "label": "Hoodies", "total_quantity": 40}
        first = await client.post("/api/v1/batches", json=payload, headers=floor.admin.headers())
        second = await client.post("/api/v1/batches", json=payload, headers=floor.admin.headers())

        assert first.status_code == 201
        assert second.status_code == 409
        assert second.json()["batch_number"] == "B-DUP"

    async def test_zero_quantity_is_rejected(self, client, floor):
        response = await client.post(
            "/api/v1/batches",
            json={"batch_number": "B-0", "label": "Nothing", "total_quantity": 0},
            headers=floor.admin.headers(),
        )

        assert response.status_code == 400

    async def test_only_admins_create_batches(self, client, floor):
        response = await client.post(
            "/api/v1/batches",
            json={"batch_number": "B-MGR", "label": "Caps", "total_quantity": 10},
            headers=floor.manager.headers(),
        )

        assert response.status_code == 403

    async def test_missing_token_is_unauthorized(self, client, floor):
        response = await client.get("/api/v1/batches")

        assert response.status_code == 401


class TestReadBatches:

    async def test_list_filters_by_stage(self, client, floor, seed_batch):
        await seed_batch(stage=ProductionStage.CUTTING)
        await seed_batch(stage=ProductionStage.FOLDING, status=BatchStatus.IN_PROGRESS, usable=100)

        response = await client.get(
            "/api/v1/batches",
            params={"current_stage": "FOLDING"},
            headers=floor.operator("FOLDING").headers(),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 1
        assert body["items"][0]["current_stage"] == "FOLDING"

    async def test_get_unknown_batch_is_not_found(self, client, floor):
        response = await client.get(
            "/api/v1/batches/00000000-0000-0000-0000-000000000000",
            headers=floor.manager.headers(),
        )

        assert response.status_code == 404


class TestCancelBatch:

    async def test_cancel_in_progress_batch(self, client, floor, seed_batch, publisher):
        batch_id = await seed_batch(stage=ProductionStage.STITCHING, status=BatchStatus.IN_PROGRESS, usable=100)

        response = await client.post(f"/api/v1/batches/{batch_id}/cancel", headers=floor.admin.headers())

        assert response.status_code == 200
        assert response.json()["status"] == "CANCELLED"
        assert response.json()["cancelled_at"] is not None
        assert publisher.names() == ["batch:status_updated"]

    async def test_cancel_closed_batch_conflicts(self, client, floor, seed_batch):
        batch_id = await seed_batch(stage=ProductionStage.PACKING, status=BatchStatus.COMPLETED, usable=100)

        response = await client.post(f"/api/v1/batches/{batch_id}/cancel", headers=floor.admin.headers())

        assert response.status_code == 409


class TestQualitySummary:

    async def test_summary_reports_inspection_progress(self, client, floor, seed_batch, slot):
        batch_id = await seed_batch(stage=ProductionStage.QUALITY_CHECK, status=BatchStatus.IN_PROGRESS)
        await client.post(
            "/api/v1/quality/inspections",
            json={
                "batch_id": str(batch_id),
                **slot(),
                "quantity_in": 60,
                "defective_quantity": 10,
                "defects": [
                    {"defect_code": "OPEN_SEAM", "quantity": 7, "severity": "MAJOR", "stage": "STITCHING"},
                    {"defect_code": "STAIN", "quantity": 3, "severity": "MINOR"},
                ],
            },
            headers=floor.operator("QUALITY_CHECK").headers(),
        )

        response = await client.get(
            f"/api/v1/batches/{batch_id}/quality-summary",
            headers=floor.manager.headers(),
        )

        assert response.status_code == 200
        summary = response.json()
        assert summary["already_inspected"] == 60
        assert summary["remaining_capacity"] == 40
        assert summary["defects_by_stage"] == {"STITCHING": 7, "QUALITY_CHECK": 3}
        assert summary["available_for_rework"] == {"CUTTING": 0, "STITCHING": 7}


class TestHealth:

    async def test_health_reports_database(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["checks"]["database"] == "connected"
