"""任务动作测试 -- POST /api/tasks/action + TaskService.perform_action

测试内容：
1. START_PACKING 示例：Packed、清空操作员、一条审计记录
2. payload 校验失败：400，无审计、无任务写入
3. REPORT_EXCEPTION 移入异常池
4. 审计优先：任务更新失败时审计记录保留
5. 审计失败不影响动作
6. 严格模式 409 / 宽松模式放行
"""

import pytest
from httpx import AsyncClient

from capicar.core.config import AUDIT_LOG_TABLE, STAFF_TABLE, TASKS_TABLE
from capicar.core.exceptions import TaskMutationError
from capicar.core.models import TaskStatus, WriteOutcome
from capicar.core.store import InMemoryRecordStore, StoreError
from capicar.gateway.services.task_service import TaskService


async def _audit_records(store: InMemoryRecordStore):
    return await store.list_records(AUDIT_LOG_TABLE)


async def _post_action(client: AsyncClient, **body):
    return await client.post("/api/tasks/action", json=body)


class TestStartPacking:
    async def test_example_flow(self, client: AsyncClient, memory_store: InMemoryRecordStore):
        """Picking + START_PACKING -> Packed，操作员清空，审计 Picking -> Packed"""
        resp = await _post_action(
            client,
            task_id="recTaskPicking",
            action="START_PACKING",
            operator_id="CAT001",
            payload={"weight": "2kg", "dimensions": "10x10x10"},
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["action"] == "START_PACKING"
        assert body["data"]["status"] == "Packed"
        assert body["data"]["currentOperator"] is None
        assert body["data"]["orderName"] == "#1002"
        assert resp.headers["X-Action-Performed"] == "START_PACKING"
        assert resp.headers["X-Server-Timestamp"] == body["timestamp"]

        audits = await _audit_records(memory_store)
        assert len(audits) == 1
        fields = audits[0].fields
        assert fields["task_id"] == "recTaskPicking"
        assert fields["action_type"] == "Packing_Started"
        assert fields["old_value"] == "Picking"
        assert fields["new_value"] == "Packed"
        assert fields["staff_id"] == ["recStaffAlice"]
        assert fields["details"] == (
            "START_PACKING: Started packing. Weight: 2kg, Dimensions: 10x10x10 (by Alice)"
        )

        record = await memory_store.get_record(TASKS_TABLE, "recTaskPicking")
        assert "current_operator" not in record.fields
        assert "picked_at" in record.fields
        assert "updated_at" in record.fields

    async def test_missing_dimensions_is_rejected_without_writes(
        self, client: AsyncClient, memory_store: InMemoryRecordStore
    ):
        before = await memory_store.get_record(TASKS_TABLE, "recTaskPicking")

        resp = await _post_action(
            client,
            task_id="recTaskPicking",
            action="START_PACKING",
            operator_id="CAT001",
            payload={"weight": "2kg"},
        )
        assert resp.status_code == 400
        assert resp.json() == {
            "success": False,
            "error": "Weight and dimensions are required for starting packing",
        }

        assert await _audit_records(memory_store) == []
        after = await memory_store.get_record(TASKS_TABLE, "recTaskPicking")
        assert after == before


class TestReportException:
    async def test_moves_task_to_exception_pool(
        self, client: AsyncClient, memory_store: InMemoryRecordStore
    ):
        resp = await _post_action(
            client,
            task_id="recTaskInspecting",
            action="REPORT_EXCEPTION",
            operator_id="CAT002",
            payload={"reason": "damaged_item", "notes": "corner crushed"},
        )
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["status"] == "Pending"
        assert data["inExceptionPool"] is True
        assert data["exceptionReason"] == "damaged_item"
        assert data["exceptionNotes"] == "corner crushed"
        assert data["exceptionLoggedAt"]
        assert data["currentOperator"] is None

        audits = await _audit_records(memory_store)
        assert audits[0].fields["action_type"] == "Exception_Logged"
        assert audits[0].fields["old_value"] == "Inspecting"

    async def test_requires_reason(self, client: AsyncClient):
        resp = await _post_action(
            client,
            task_id="recTaskInspecting",
            action="REPORT_EXCEPTION",
            operator_id="CAT002",
            payload={},
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "Exception reason is required"


class TestRequestValidation:
    @pytest.mark.parametrize(
        "body",
        [
            {"action": "START_PICKING"},
            {"task_id": "recTaskPending"},
            {"task_id": "", "action": "START_PICKING"},
        ],
    )
    async def test_missing_required_fields(self, client: AsyncClient, body):
        resp = await client.post("/api/tasks/action", json=body)
        assert resp.status_code == 400
        assert resp.json()["error"] == "Missing required fields: task_id and action"

    async def test_unknown_action(self, client: AsyncClient):
        resp = await _post_action(client, task_id="recTaskPending", action="FLY_AWAY")
        assert resp.status_code == 400
        assert resp.json()["error"] == "Unknown action: FLY_AWAY"

    async def test_resume_requires_operator(self, client: AsyncClient):
        resp = await _post_action(client, task_id="recTaskPaused", action="RESUME_TASK")
        assert resp.status_code == 400
        assert resp.json()["error"] == "Operator ID is required for resuming tasks"

    async def test_correction_requires_error_type(self, client: AsyncClient):
        resp = await _post_action(
            client,
            task_id="recTaskInspecting",
            action="ENTER_CORRECTION",
            operator_id="CAT002",
            payload={"notes": "wrong colour"},
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "Error type is required for corrections"

    async def test_task_not_found(self, client: AsyncClient):
        resp = await _post_action(
            client, task_id="recMissing", action="START_PICKING", operator_id="CAT001"
        )
        assert resp.status_code == 404
        assert resp.json() == {"success": False, "error": "Task not found"}

    async def test_malformed_json(self, client: AsyncClient):
        resp = await client.post(
            "/api/tasks/action",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid request data"


class TestOperatorEffects:
    async def test_start_picking_assigns_operator(self, client: AsyncClient):
        resp = await _post_action(
            client, task_id="recTaskPending", action="START_PICKING", operator_id="CAT002"
        )
        data = resp.json()["data"]
        assert data["status"] == "Picking"
        assert data["currentOperator"] == {"id": "CAT002", "name": "Bob"}

    async def test_pause_then_resume(self, client: AsyncClient):
        resp = await _post_action(
            client, task_id="recTaskPicking", action="PAUSE_TASK", operator_id="CAT001"
        )
        data = resp.json()["data"]
        assert data["isPaused"] is True
        assert data["status"] == "Picking"
        assert data["currentOperator"] is None

        resp = await _post_action(
            client, task_id="recTaskPicking", action="RESUME_TASK", operator_id="CAT002"
        )
        data = resp.json()["data"]
        assert data["isPaused"] is False
        assert data["currentOperator"]["id"] == "CAT002"

    async def test_enter_correction_accepts_camel_case_payload(self, client: AsyncClient):
        resp = await _post_action(
            client,
            task_id="recTaskInspecting",
            action="ENTER_CORRECTION",
            operator_id="CAT002",
            payload={"errorType": "wrong_item"},
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["status"] == "Correction_Needed"


class TestAuditFirstWrites:
    """审计优先的两阶段写入"""

    async def test_committed(self, memory_store: InMemoryRecordStore):
        result = await TaskService(memory_store, strict_transitions=False).perform_action(
            "recTaskPending", "START_PICKING", "CAT001"
        )
        assert result.outcome == WriteOutcome.COMMITTED
        assert result.audit_recorded is True
        assert result.task.status == TaskStatus.PICKING

    async def test_no_operator_skips_audit(self, memory_store: InMemoryRecordStore):
        result = await TaskService(memory_store, strict_transitions=False).perform_action(
            "recTaskPending", "START_PICKING"
        )
        assert result.outcome == WriteOutcome.UNAUDITED
        assert await _audit_records(memory_store) == []

    async def test_audit_kept_when_task_update_fails(
        self, memory_store: InMemoryRecordStore, monkeypatch
    ):
        async def failing_update(table, record_id, fields):
            raise StoreError("Airtable PATCH failed (503)", status_code=503)

        monkeypatch.setattr(memory_store, "update_record", failing_update)

        with pytest.raises(TaskMutationError) as exc_info:
            await TaskService(memory_store, strict_transitions=False).perform_action(
                "recTaskPending", "START_PICKING", "CAT001"
            )

        assert exc_info.value.outcome == WriteOutcome.MUTATION_FAILED
        assert exc_info.value.audit_recorded is True
        assert str(exc_info.value) == "Failed to update task: Airtable PATCH failed (503)"
        audits = await _audit_records(memory_store)
        assert len(audits) == 1
        assert audits[0].fields["action_type"] == "Task_Started"

    async def test_task_update_failure_is_surfaced_over_http(
        self, client: AsyncClient, memory_store: InMemoryRecordStore, monkeypatch
    ):
        async def failing_update(table, record_id, fields):
            raise StoreError("Airtable PATCH failed (503)", status_code=503)

        monkeypatch.setattr(memory_store, "update_record", failing_update)
        monkeypatch.delenv("CAPICAR_ENV", raising=False)

        resp = await _post_action(
            client, task_id="recTaskPending", action="START_PICKING", operator_id="CAT001"
        )
        assert resp.status_code == 500
        assert resp.json() == {
            "success": False,
            "error": "Failed to perform task action",
            "message": "Something went wrong",
        }
        assert len(await _audit_records(memory_store)) == 1

    async def test_both_failed(self, memory_store: InMemoryRecordStore, monkeypatch):
        async def failing(*args, **kwargs):
            raise StoreError("Airtable unavailable")

        monkeypatch.setattr(memory_store, "create_record", failing)
        monkeypatch.setattr(memory_store, "update_record", failing)

        with pytest.raises(TaskMutationError) as exc_info:
            await TaskService(memory_store, strict_transitions=False).perform_action(
                "recTaskPending", "START_PICKING", "CAT001"
            )
        assert exc_info.value.outcome == WriteOutcome.BOTH_FAILED
        assert exc_info.value.audit_recorded is False

    async def test_audit_failure_is_swallowed(
        self, client: AsyncClient, memory_store: InMemoryRecordStore, monkeypatch
    ):
        async def failing_create(table, fields):
            raise StoreError("INVALID_MULTIPLE_CHOICE_OPTIONS", status_code=422)

        monkeypatch.setattr(memory_store, "create_record", failing_create)

        result = await TaskService(memory_store, strict_transitions=False).perform_action(
            "recTaskPending", "START_PICKING", "CAT001"
        )
        assert result.outcome == WriteOutcome.AUDIT_FAILED
        assert result.task.status == TaskStatus.PICKING

        resp = await _post_action(
            client, task_id="recTaskPaused", action="START_INSPECTION", operator_id="CAT002"
        )
        assert resp.status_code == 200
        assert "audit" not in resp.json()

    async def test_unknown_operator_recorded_by_name(self, memory_store: InMemoryRecordStore):
        await TaskService(memory_store, strict_transitions=False).perform_action(
            "recTaskPending", "START_PICKING", "GHOST"
        )
        audits = await _audit_records(memory_store)
        assert "staff_id" not in audits[0].fields
        assert audits[0].fields["details"].endswith("(by Unknown (GHOST))")

    async def test_anonymous_operator(self, memory_store: InMemoryRecordStore):
        await TaskService(memory_store, strict_transitions=False).perform_action(
            "recTaskPending", "START_PICKING", "unknown"
        )
        audits = await _audit_records(memory_store)
        assert audits[0].fields["details"].endswith("(by Unknown Operator)")

    async def test_numeric_operator_id_accepted(
        self, client: AsyncClient, memory_store: InMemoryRecordStore
    ):
        await memory_store.create_record(STAFF_TABLE, {"staff_id": "42", "name": "Numa"})
        resp = await _post_action(
            client, task_id="recTaskPending", action="START_PICKING", operator_id=42
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["currentOperator"] == {"id": "42", "name": "Numa"}

        audits = await _audit_records(memory_store)
        assert audits[0].fields["details"].endswith("(by Numa)")


class TestTransitionModes:
    async def test_lenient_mode_permits_illegal_transition(
        self, client: AsyncClient, monkeypatch
    ):
        monkeypatch.delenv("CAPICAR_STRICT_TRANSITIONS", raising=False)
        resp = await _post_action(
            client, task_id="recTaskPending", action="RESOLVE_CORRECTION", operator_id="CAT001"
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["status"] == "Completed"

    async def test_strict_mode_rejects_before_any_write(
        self, client: AsyncClient, memory_store: InMemoryRecordStore, monkeypatch
    ):
        monkeypatch.setenv("CAPICAR_STRICT_TRANSITIONS", "true")
        resp = await _post_action(
            client, task_id="recTaskPending", action="RESOLVE_CORRECTION", operator_id="CAT001"
        )
        assert resp.status_code == 409
        assert resp.json()["success"] is False

        assert await _audit_records(memory_store) == []
        record = await memory_store.get_record(TASKS_TABLE, "recTaskPending")
        assert record.fields["status"] == "Pending"

    async def test_strict_mode_allows_legal_transition(self, client: AsyncClient, monkeypatch):
        monkeypatch.setenv("CAPICAR_STRICT_TRANSITIONS", "true")
        resp = await _post_action(
            client, task_id="recTaskCorrecting", action="RESOLVE_CORRECTION", operator_id="CAT002"
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["status"] == "Completed"
