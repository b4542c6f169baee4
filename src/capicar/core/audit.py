"""审计词表 -- 动作类型映射、展示文案与图标

客户端与服务端使用的动作名（TaskAction 及客户端别名）统一映射到
Audit_Log 表 action_type 单选字段可接受的 AuditActionType；
未知动作落入 Other_Actions，不报错。
"""

from .models.enums import AuditActionType, TaskAction

AUDIT_ACTION_MAP: dict[str, AuditActionType] = {
    TaskAction.START_PICKING: AuditActionType.TASK_STARTED,
    TaskAction.START_PACKING: AuditActionType.PACKING_STARTED,
    TaskAction.START_INSPECTION: AuditActionType.INSPECTION_STARTED,
    TaskAction.COMPLETE_INSPECTION: AuditActionType.TASK_COMPLETED,
    TaskAction.ENTER_CORRECTION: AuditActionType.INSPECTION_FAILED,
    TaskAction.START_CORRECTION: AuditActionType.CORRECTION_STARTED,
    TaskAction.RESOLVE_CORRECTION: AuditActionType.CORRECTION_COMPLETED,
    TaskAction.LABEL_CREATED: AuditActionType.OTHER_ACTIONS,
    TaskAction.REPORT_EXCEPTION: AuditActionType.EXCEPTION_LOGGED,
    TaskAction.PAUSE_TASK: AuditActionType.TASK_PAUSED,
    TaskAction.RESUME_TASK: AuditActionType.TASK_RESUMED,
    TaskAction.CANCEL_TASK: AuditActionType.TASK_AUTO_CANCELLED,
    # 客户端 ViewModel 使用的别名
    "INSPECTION_PASSED": AuditActionType.TASK_COMPLETED,
    "INSPECTION_FAILED": AuditActionType.INSPECTION_FAILED,
    "TASK_PAUSED": AuditActionType.TASK_PAUSED,
    "CORRECTION_STARTED": AuditActionType.CORRECTION_STARTED,
    "TASK_COMPLETED": AuditActionType.TASK_COMPLETED,
    "REPORT_ISSUE": AuditActionType.EXCEPTION_LOGGED,
    "FIELD_UPDATED": AuditActionType.FIELD_UPDATED,
    # 通用类型
    "status_change": AuditActionType.OTHER_ACTIONS,
    "checklist_update": AuditActionType.OTHER_ACTIONS,
}

ACTION_DISPLAY: dict[str, str] = {
    AuditActionType.TASK_STARTED: "Task Started",
    AuditActionType.PACKING_STARTED: "Packing Completed",
    AuditActionType.INSPECTION_STARTED: "Inspection Started",
    AuditActionType.TASK_COMPLETED: "Task Completed",
    AuditActionType.INSPECTION_FAILED: "Inspection Failed - Correction Required",
    AuditActionType.CORRECTION_STARTED: "Correction Started",
    AuditActionType.CORRECTION_COMPLETED: "Task Completed via Correction",
    AuditActionType.FIELD_UPDATED: "Updated",
    AuditActionType.EXCEPTION_LOGGED: "Exception Reported",
    AuditActionType.TASK_PAUSED: "Task Paused",
    AuditActionType.TASK_RESUMED: "Task Resumed",
    AuditActionType.TASK_AUTO_CANCELLED: "Task Cancelled",
    # 映射到 Other_Actions 但需要专门文案的原始动作
    TaskAction.LABEL_CREATED: "New Label Printed",
}

ACTION_ICONS: dict[str, str] = {
    AuditActionType.TASK_STARTED: "play.circle",
    AuditActionType.PACKING_STARTED: "shippingbox",
    AuditActionType.INSPECTION_STARTED: "magnifyingglass",
    AuditActionType.TASK_COMPLETED: "checkmark.seal",
    AuditActionType.INSPECTION_FAILED: "exclamationmark.triangle",
    AuditActionType.CORRECTION_STARTED: "wrench",
    AuditActionType.CORRECTION_COMPLETED: "checkmark.circle.fill",
    AuditActionType.FIELD_UPDATED: "pencil",
    AuditActionType.EXCEPTION_LOGGED: "exclamationmark.circle",
    AuditActionType.TASK_PAUSED: "pause.circle",
    AuditActionType.TASK_RESUMED: "play.circle",
    AuditActionType.TASK_AUTO_CANCELLED: "xmark.circle",
}

DEFAULT_ICON = "circle"


def map_action_type(action_type: str) -> AuditActionType:
    """将任意动作名映射到审计词表，未知动作返回 Other_Actions"""
    return AUDIT_ACTION_MAP.get(action_type, AuditActionType.OTHER_ACTIONS)


def format_audit_details(action_type: str, details: str | None, staff_name: str) -> str:
    """构造 details 字段：'<原始动作>: <描述> (by <操作员>)'"""
    return f"{action_type}: {details or ''} (by {staff_name})".strip()


def format_action_for_display(action_type: str, details: str | None) -> str:
    """审计记录的展示文案

    details 以原始动作名开头（见 format_audit_details），优先按原始动作展示，
    这样映射到同一类型的不同动作（如 LABEL_CREATED / Other_Actions）仍可区分。
    """
    original = (details or "").split(":", 1)[0].strip()
    if original and original != action_type:
        if original in ACTION_DISPLAY:
            return ACTION_DISPLAY[original]
        if original in AUDIT_ACTION_MAP:
            mapped = AUDIT_ACTION_MAP[original]
            if mapped in ACTION_DISPLAY:
                return ACTION_DISPLAY[mapped]
        return original.replace("_", " ")
    return ACTION_DISPLAY.get(action_type, action_type.replace("_", " "))


def action_icon(action_type: str) -> str:
    """审计动作对应的 SF Symbol 图标名"""
    return ACTION_ICONS.get(action_type, DEFAULT_ICON)
