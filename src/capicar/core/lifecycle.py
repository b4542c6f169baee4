"""任务生命周期 -- 动作到状态流转的规则表与写入计划

plan_action() 是纯函数：给定当前任务、动作、操作员与 payload，
计算目标状态、要写入的任务字段和审计意图；实际的审计优先写入由 TaskService 编排。

| 动作                | 目标状态           | 操作员字段 |
|---------------------|--------------------|------------|
| START_PICKING       | Picking            | 设为操作员 |
| START_PACKING       | Packed             | 清空       |
| START_INSPECTION    | Inspecting         | 设为操作员 |
| COMPLETE_INSPECTION | Completed          | 清空       |
| ENTER_CORRECTION    | Correction_Needed  | 设为操作员 |
| START_CORRECTION    | Correcting         | 设为操作员 |
| RESOLVE_CORRECTION  | Completed          | 清空       |
| LABEL_CREATED       | Completed          | 清空       |
| PAUSE_TASK          | 不变, is_paused    | 清空       |
| RESUME_TASK         | 不变, !is_paused   | 设为操作员 |
| CANCEL_TASK         | Cancelled          | 设为操作员 |
| REPORT_EXCEPTION    | Pending + 异常池   | 清空       |
"""

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

import structlog
from pydantic import BaseModel, Field

from .exceptions import ActionValidationError, IllegalTransitionError
from .models import ActionPayload, FulfillmentTask, TaskAction, TaskStatus, validate_action

log = structlog.get_logger()


class OperatorEffect(StrEnum):
    """动作对 current_operator 字段的影响"""

    ASSIGN = "assign"
    CLEAR = "clear"


@dataclass(frozen=True)
class ActionRule:
    """单个动作的流转规则，target_status 为 None 表示状态不变"""

    target_status: TaskStatus | None
    operator_effect: OperatorEffect
    pause_flag: bool | None = None


ACTION_RULES: dict[TaskAction, ActionRule] = {
    TaskAction.START_PICKING: ActionRule(TaskStatus.PICKING, OperatorEffect.ASSIGN),
    TaskAction.START_PACKING: ActionRule(TaskStatus.PACKED, OperatorEffect.CLEAR),
    TaskAction.START_INSPECTION: ActionRule(TaskStatus.INSPECTING, OperatorEffect.ASSIGN),
    TaskAction.COMPLETE_INSPECTION: ActionRule(TaskStatus.COMPLETED, OperatorEffect.CLEAR),
    TaskAction.ENTER_CORRECTION: ActionRule(
        TaskStatus.CORRECTION_NEEDED, OperatorEffect.ASSIGN
    ),
    TaskAction.START_CORRECTION: ActionRule(TaskStatus.CORRECTING, OperatorEffect.ASSIGN),
    TaskAction.RESOLVE_CORRECTION: ActionRule(TaskStatus.COMPLETED, OperatorEffect.CLEAR),
    TaskAction.LABEL_CREATED: ActionRule(TaskStatus.COMPLETED, OperatorEffect.CLEAR),
    TaskAction.PAUSE_TASK: ActionRule(None, OperatorEffect.CLEAR, pause_flag=True),
    TaskAction.RESUME_TASK: ActionRule(None, OperatorEffect.ASSIGN, pause_flag=False),
    TaskAction.CANCEL_TASK: ActionRule(TaskStatus.CANCELLED, OperatorEffect.ASSIGN),
    TaskAction.REPORT_EXCEPTION: ActionRule(TaskStatus.PENDING, OperatorEffect.CLEAR),
}

# 进入状态时记录的时间戳字段
STATUS_TIMESTAMP_FIELDS: dict[TaskStatus, str] = {
    TaskStatus.PICKING: "started_at",
    TaskStatus.PACKED: "picked_at",
    TaskStatus.INSPECTING: "start_inspection_at",
    TaskStatus.COMPLETED: "completed_at",
}


class AuditIntent(BaseModel):
    """待写入的审计内容（action_type 为原始动作名，写入时再映射）"""

    action_type: str
    old_value: str | None = None
    new_value: str | None = None
    details: str = ""


class ActionPlan(BaseModel):
    """动作执行计划"""

    task_id: str
    action: TaskAction
    operator_id: str | None = None
    new_status: TaskStatus
    fields: dict[str, Any] = Field(default_factory=dict)
    audit: AuditIntent


def parse_action(raw: str) -> TaskAction:
    """解析动作名

    Raises:
        ActionValidationError: 未知动作
    """
    try:
        return TaskAction(raw)
    except ValueError:
        raise ActionValidationError(f"Unknown action: {raw}") from None


def validate_request(
    action: TaskAction,
    operator_id: str | None,
    payload: ActionPayload,
) -> None:
    """校验动作所需的 payload / 操作员，在任何读写之前执行

    Raises:
        ActionValidationError: 缺少必要字段
    """
    if action == TaskAction.START_PACKING and not (payload.weight and payload.dimensions):
        raise ActionValidationError(
            "Weight and dimensions are required for starting packing"
        )
    if action == TaskAction.ENTER_CORRECTION and not payload.error_type:
        raise ActionValidationError("Error type is required for corrections")
    if action == TaskAction.REPORT_EXCEPTION and not payload.reason:
        raise ActionValidationError("Exception reason is required")
    if action == TaskAction.RESUME_TASK and not operator_id:
        raise ActionValidationError("Operator ID is required for resuming tasks")


def check_transition(task: FulfillmentTask, action: TaskAction, strict: bool) -> None:
    """检查动作对当前状态是否合法

    宽松模式仅记录 warning 并放行；严格模式抛出 IllegalTransitionError。
    """
    if validate_action(task.status, action):
        return
    if strict:
        raise IllegalTransitionError(task.status, action)
    log.warning(
        "illegal_transition_permitted",
        task_id=task.id,
        current_status=task.status.value,
        action=action.value,
    )


def exception_pool_fields(reason: str, notes: str, now: str) -> dict[str, Any]:
    """将任务移入异常池的字段（回到 Pending 并清空操作员）"""
    return {
        "status": TaskStatus.PENDING.value,
        "in_exception_pool": True,
        "exception_reason": reason,
        "exception_notes": notes,
        "exception_logged_at": now,
        "return_to_pending_at": now,
        "current_operator": "",
        "updated_at": now,
    }


_FIXED_DETAILS: dict[TaskAction, str] = {
    TaskAction.COMPLETE_INSPECTION: "Inspection completed successfully",
    TaskAction.RESOLVE_CORRECTION: "Correction resolved and task completed",
    TaskAction.LABEL_CREATED: "New label printed. Task completed.",
    TaskAction.PAUSE_TASK: "Task paused by operator",
}


def _describe(
    action: TaskAction,
    old: TaskStatus,
    new: TaskStatus,
    payload: ActionPayload,
) -> str:
    if action in _FIXED_DETAILS:
        return _FIXED_DETAILS[action]
    if action == TaskAction.START_PACKING:
        return f"Started packing. Weight: {payload.weight}, Dimensions: {payload.dimensions}"
    if action == TaskAction.ENTER_CORRECTION:
        text = f"Inspection failed. Error type: {payload.error_type}"
        return f"{text} - {payload.notes}" if payload.notes else text
    if action == TaskAction.RESUME_TASK:
        return f"Task resumed from {old} status"
    if action == TaskAction.REPORT_EXCEPTION:
        return f"Exception reported: {payload.reason} - {payload.notes or ''}"
    return f"Status updated from {old} to {new}"


def plan_action(
    task: FulfillmentTask,
    action: TaskAction,
    operator_id: str | None,
    payload: ActionPayload,
    now: str,
) -> ActionPlan:
    """计算动作的目标状态、任务字段与审计意图"""
    rule = ACTION_RULES[action]
    old_status = task.status
    new_status = rule.target_status or old_status

    if action == TaskAction.REPORT_EXCEPTION:
        fields = exception_pool_fields(payload.reason or "", payload.notes or "", now)
    else:
        fields = {"updated_at": now}
        if rule.target_status is not None:
            fields["status"] = new_status.value
            if timestamp_field := STATUS_TIMESTAMP_FIELDS.get(new_status):
                fields[timestamp_field] = now
        if rule.pause_flag is not None:
            fields["is_paused"] = rule.pause_flag
        if rule.operator_effect == OperatorEffect.ASSIGN and operator_id:
            fields["current_operator"] = operator_id
        else:
            fields["current_operator"] = ""

    if action == TaskAction.RESUME_TASK:
        old_value = "Paused"
    else:
        old_value = old_status.value

    return ActionPlan(
        task_id=task.id,
        action=action,
        operator_id=operator_id,
        new_status=new_status,
        fields=fields,
        audit=AuditIntent(
            action_type=action.value,
            old_value=old_value,
            new_value=new_status.value,
            details=_describe(action, old_status, new_status, payload),
        ),
    )
