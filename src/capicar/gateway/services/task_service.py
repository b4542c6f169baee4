"""TaskService -- 任务查询与动作执行

动作执行流程：
1. 解析动作并校验 payload（失败时不产生任何读写）
2. 读取任务（不存在 -> TaskNotFoundError）
3. 检查当前状态是否允许该动作（严格模式拒绝，宽松模式仅告警）
4. 计算写入计划
5. 有操作员时先追加审计记录，再更新任务（审计优先）
"""

import json
from typing import Any

import structlog

from capicar.core.config import (
    DETAILS_PREVIEW_LENGTH,
    TASKS_TABLE,
    TASKS_VIEW,
    strict_transitions_enabled,
)
from capicar.core.exceptions import (
    ActionValidationError,
    TaskMutationError,
    TaskNotFoundError,
)
from capicar.core.lifecycle import (
    AuditIntent,
    check_transition,
    exception_pool_fields,
    parse_action,
    plan_action,
    validate_request,
)
from capicar.core.mapper import RecordMapper, utc_now_iso
from capicar.core.models import (
    ActionPayload,
    ActionResult,
    DashboardData,
    FulfillmentTask,
    TaskStatus,
    WorkHistoryItem,
    WriteOutcome,
)
from capicar.core.store import RecordStore, SortSpec, StoreRecord

from .audit_service import AuditService
from .staff_service import StaffService

log = structlog.get_logger()

# 看板分组顺序；inspecting 合并 Inspecting / Correction_Needed / Correcting
DASHBOARD_BUCKETS: dict[str, tuple[TaskStatus, ...]] = {
    "pending": (TaskStatus.PENDING,),
    "picking": (TaskStatus.PICKING,),
    "packed": (TaskStatus.PACKED,),
    "inspecting": (
        TaskStatus.INSPECTING,
        TaskStatus.CORRECTION_NEEDED,
        TaskStatus.CORRECTING,
    ),
    "completed": (TaskStatus.COMPLETED,),
    "paused": (),
    "cancelled": (TaskStatus.CANCELLED,),
}

# 暂停的任务只出现在 paused 分组，但终态分组不排除暂停任务
_PAUSE_EXEMPT_BUCKETS = frozenset({"completed", "cancelled"})


class TaskService:
    """任务业务服务

    每个请求构造一个实例；员工查找缓存随实例释放。
    """

    def __init__(
        self,
        store: RecordStore,
        strict_transitions: bool | None = None,
    ) -> None:
        self._store = store
        self._staff = StaffService(store)
        self._audit = AuditService(store, self._staff)
        self._mapper = RecordMapper(resolve_operator=self._staff.get_staff)
        if strict_transitions is None:
            strict_transitions = strict_transitions_enabled()
        self._strict = strict_transitions

    async def get_task(self, task_id: str) -> FulfillmentTask | None:
        """按 record id 查询任务，不存在返回 None"""
        record = await self._store.get_record(TASKS_TABLE, task_id)
        if record is None:
            return None
        return await self._mapper.to_task(record)

    async def _require_record(self, task_id: str) -> StoreRecord:
        record = await self._store.get_record(TASKS_TABLE, task_id)
        if record is None:
            raise TaskNotFoundError(task_id)
        return record

    async def list_tasks(self) -> list[FulfillmentTask]:
        """全部任务，按创建时间倒序"""
        records = await self._store.list_records(
            TASKS_TABLE,
            sort=[SortSpec(field="created_at", direction="desc")],
            view=TASKS_VIEW,
        )
        return await self._mapper.to_tasks(records)

    async def dashboard(self) -> DashboardData:
        """按简化状态分组的看板数据"""
        tasks = await self.list_tasks()
        generated_at = utc_now_iso()

        grouped: dict[str, list[FulfillmentTask]] = {}
        for bucket, statuses in DASHBOARD_BUCKETS.items():
            if bucket == "paused":
                grouped[bucket] = [t for t in tasks if t.is_paused]
                continue
            members: list[FulfillmentTask] = []
            for status in statuses:
                members.extend(
                    t
                    for t in tasks
                    if t.status == status
                    and (bucket in _PAUSE_EXEMPT_BUCKETS or not t.is_paused)
                )
            grouped[bucket] = members

        stats = {bucket: len(members) for bucket, members in grouped.items()}
        stats["total"] = sum(stats.values())

        log.info("dashboard_generated", total=stats["total"])
        return DashboardData(tasks=grouped, stats=stats, last_updated=generated_at)

    async def get_work_history(self, task_id: str) -> list[WorkHistoryItem]:
        return await self._audit.get_work_history(task_id)

    async def _audited_update(
        self,
        task_id: str,
        operator_id: str | None,
        audit: AuditIntent,
        fields: dict[str, Any],
    ) -> tuple[StoreRecord, WriteOutcome]:
        """审计优先的两阶段写入

        有操作员时先追加审计记录（失败只记录日志），再更新任务；
        任务更新失败时抛出 TaskMutationError，已写入的审计记录保留。
        """
        audited: bool | None = None
        if operator_id:
            audited = await self._audit.log_action(
                operator_id,
                task_id,
                audit.action_type,
                audit.old_value,
                audit.new_value,
                audit.details,
            )

        try:
            record = await self._store.update_record(TASKS_TABLE, task_id, fields)
        except Exception as e:
            if audited is None:
                outcome = WriteOutcome.UNAUDITED
            elif audited:
                outcome = WriteOutcome.MUTATION_FAILED
            else:
                outcome = WriteOutcome.BOTH_FAILED
            log.error(
                "task_update_failed_after_audit" if audited else "task_update_failed",
                task_id=task_id,
                action_type=audit.action_type,
                outcome=outcome.value,
                error=str(e),
            )
            raise TaskMutationError(task_id, outcome, e) from e

        if audited is None:
            outcome = WriteOutcome.UNAUDITED
        elif audited:
            outcome = WriteOutcome.COMMITTED
        else:
            outcome = WriteOutcome.AUDIT_FAILED
        return record, outcome

    async def perform_action(
        self,
        task_id: str,
        action: str,
        operator_id: str | None = None,
        payload: ActionPayload | None = None,
    ) -> ActionResult:
        """执行任务动作

        Raises:
            ActionValidationError: 未知动作或缺少必要字段
            TaskNotFoundError: 任务不存在
            IllegalTransitionError: 严格模式下动作对当前状态不合法
            TaskMutationError: 任务更新失败
        """
        parsed = parse_action(action)
        payload = payload or ActionPayload()
        validate_request(parsed, operator_id, payload)

        current = await self._mapper.to_task(await self._require_record(task_id))
        check_transition(current, parsed, self._strict)

        plan = plan_action(current, parsed, operator_id, payload, utc_now_iso())
        record, outcome = await self._audited_update(
            task_id, operator_id, plan.audit, plan.fields
        )

        log.info(
            "task_action_performed",
            task_id=task_id,
            action=parsed.value,
            old_status=current.status.value,
            new_status=plan.new_status.value,
            outcome=outcome.value,
        )
        return ActionResult(task=await self._mapper.to_task(record), outcome=outcome)

    async def update_checklist(
        self,
        task_id: str,
        checklist_json: str | list[Any],
    ) -> FulfillmentTask:
        """替换任务拣货清单（不写审计）

        Raises:
            ActionValidationError: checklist_json 不是 JSON 列表
            TaskNotFoundError: 任务不存在
        """
        if isinstance(checklist_json, list):
            checklist_json = json.dumps(checklist_json, ensure_ascii=False)
        try:
            parsed = json.loads(checklist_json)
        except ValueError:
            parsed = None
        if not isinstance(parsed, list):
            raise ActionValidationError("checklist_json must be a JSON-encoded list")

        await self._require_record(task_id)
        record = await self._store.update_record(
            TASKS_TABLE,
            task_id,
            {"checklist_json": checklist_json, "updated_at": utc_now_iso()},
        )
        log.info("task_checklist_updated", task_id=task_id, items=len(parsed))
        return await self._mapper.to_task(record)

    async def report_issue(
        self,
        task_id: str,
        operator_id: str,
        issue_type: str,
        description: str,
        *,
        operator_name: str | None = None,
        task_status: str | None = None,
        order_name: str | None = None,
        reported_at: str | None = None,
    ) -> WriteOutcome:
        """上报问题：先写详细审计记录，再将任务移入异常池

        Raises:
            TaskNotFoundError: 任务不存在
            TaskMutationError: 任务更新失败
        """
        current = await self._mapper.to_task(await self._require_record(task_id))
        now = utc_now_iso()
        old_status = task_status or current.status.value

        details = "\n".join(
            [
                "Detailed Issue Report",
                f"Issue Type: {issue_type}",
                f"Description: {description}",
                f"Task Status: {old_status}",
                f"Order: {order_name or current.order_name}",
                f"Timestamp: {reported_at or now}",
                f"Operator: {operator_name or 'Unknown'} ({operator_id})",
                "Task moved to exception pool for resolution",
            ]
        )
        _, outcome = await self._audited_update(
            task_id,
            operator_id,
            AuditIntent(
                action_type="REPORT_ISSUE",
                old_value=old_status,
                new_value=TaskStatus.PENDING.value,
                details=details,
            ),
            exception_pool_fields(issue_type, description, now),
        )

        preview = description[:DETAILS_PREVIEW_LENGTH]
        if len(description) > DETAILS_PREVIEW_LENGTH:
            preview += "..."
        log.info(
            "task_moved_to_exception_pool",
            task_id=task_id,
            reason=issue_type,
            description=preview,
            outcome=outcome.value,
        )
        return outcome
