"""枚举定义 -- 任务状态、任务动作、审计动作类型

包含 TaskStatus 状态集合、TaskAction 动作集合、AuditActionType 审计词表、
WriteOutcome 两阶段写入结果，以及 ACTION_SOURCES 合法来源状态映射。
"""

from enum import StrEnum


class TaskStatus(StrEnum):
    """履约任务状态（封闭集合）

    is_paused 是叠加在任意状态上的布尔标记，不是状态本身。
    """

    PENDING = "Pending"
    PICKING = "Picking"
    PACKED = "Packed"
    INSPECTING = "Inspecting"
    CORRECTION_NEEDED = "Correction_Needed"
    CORRECTING = "Correcting"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class TaskAction(StrEnum):
    """客户端可发起的任务动作"""

    START_PICKING = "START_PICKING"
    START_PACKING = "START_PACKING"
    START_INSPECTION = "START_INSPECTION"
    COMPLETE_INSPECTION = "COMPLETE_INSPECTION"
    ENTER_CORRECTION = "ENTER_CORRECTION"
    START_CORRECTION = "START_CORRECTION"
    RESOLVE_CORRECTION = "RESOLVE_CORRECTION"
    LABEL_CREATED = "LABEL_CREATED"
    REPORT_EXCEPTION = "REPORT_EXCEPTION"
    PAUSE_TASK = "PAUSE_TASK"
    RESUME_TASK = "RESUME_TASK"
    CANCEL_TASK = "CANCEL_TASK"


class AuditActionType(StrEnum):
    """Audit_Log 表 action_type 单选字段的可选值"""

    TASK_STARTED = "Task_Started"
    PACKING_STARTED = "Packing_Started"
    INSPECTION_STARTED = "Inspection_Started"
    TASK_COMPLETED = "Task_Completed"
    INSPECTION_FAILED = "Inspection_Failed"
    CORRECTION_STARTED = "Correction_Started"
    CORRECTION_COMPLETED = "Correction_Completed"
    EXCEPTION_LOGGED = "Exception_Logged"
    TASK_PAUSED = "Task_Paused"
    TASK_RESUMED = "Task_Resumed"
    TASK_AUTO_CANCELLED = "Task_Auto_Cancelled"
    FIELD_UPDATED = "Field_Updated"
    OTHER_ACTIONS = "Other_Actions"


class CheckinAction(StrEnum):
    """员工签到动作（仅回显，不持久化）"""

    CHECK_IN = "CHECK_IN"
    CHECK_OUT = "CHECK_OUT"


class WriteOutcome(StrEnum):
    """审计优先两阶段写入的结果"""

    COMMITTED = "committed"  # 审计成功 + 任务更新成功
    AUDIT_FAILED = "audit_failed"  # 审计失败 + 任务更新成功
    MUTATION_FAILED = "mutation_failed"  # 审计成功 + 任务更新失败
    BOTH_FAILED = "both_failed"
    UNAUDITED = "unaudited"  # 无操作员，跳过审计


TERMINAL_STATES: frozenset[TaskStatus] = frozenset(
    {TaskStatus.COMPLETED, TaskStatus.CANCELLED}
)

ACTIVE_STATES: frozenset[TaskStatus] = frozenset(TaskStatus) - TERMINAL_STATES

# 动作 -> 允许的当前状态
ACTION_SOURCES: dict[TaskAction, frozenset[TaskStatus]] = {
    TaskAction.START_PICKING: frozenset({TaskStatus.PENDING}),
    TaskAction.START_PACKING: frozenset({TaskStatus.PICKING}),
    TaskAction.START_INSPECTION: frozenset({TaskStatus.PACKED}),
    TaskAction.COMPLETE_INSPECTION: frozenset({TaskStatus.INSPECTING}),
    TaskAction.ENTER_CORRECTION: frozenset({TaskStatus.INSPECTING}),
    TaskAction.START_CORRECTION: frozenset({TaskStatus.CORRECTION_NEEDED}),
    TaskAction.RESOLVE_CORRECTION: frozenset({TaskStatus.CORRECTING}),
    TaskAction.LABEL_CREATED: frozenset(
        {
            TaskStatus.INSPECTING,
            TaskStatus.CORRECTION_NEEDED,
            TaskStatus.CORRECTING,
        }
    ),
    TaskAction.PAUSE_TASK: ACTIVE_STATES,
    TaskAction.RESUME_TASK: ACTIVE_STATES,
    TaskAction.CANCEL_TASK: ACTIVE_STATES,
    TaskAction.REPORT_EXCEPTION: frozenset(TaskStatus),
}


def validate_action(current: TaskStatus, action: TaskAction) -> bool:
    """验证动作在当前状态下是否合法

    Args:
        current: 任务当前状态
        action: 请求的动作

    Returns:
        True 如果合法，否则 False
    """
    return current in ACTION_SOURCES.get(action, frozenset())
