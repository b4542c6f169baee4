"""Core 异常体系

gateway 层将这些异常映射为 HTTP 状态码：
ActionValidationError -> 400, *NotFoundError -> 404,
IllegalTransitionError -> 409, TaskMutationError -> 500。
"""

from .models.enums import TaskAction, TaskStatus, WriteOutcome


class CapicarError(Exception):
    """Core 包基础异常"""


class ActionValidationError(CapicarError):
    """请求缺少必要字段或 payload 不完整"""


class TaskNotFoundError(CapicarError):
    """任务不存在"""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task {task_id} not found")
        self.task_id = task_id


class StaffNotFoundError(CapicarError):
    """员工不存在（按 staff_id 查找）"""

    def __init__(self, staff_id: str) -> None:
        super().__init__(f"Staff member {staff_id} not found")
        self.staff_id = staff_id


class IllegalTransitionError(CapicarError):
    """严格模式下，动作对当前状态不合法"""

    def __init__(self, current: TaskStatus, action: TaskAction) -> None:
        super().__init__(f"Action {action} is not allowed while task is {current}")
        self.current = current
        self.action = action


class TaskMutationError(CapicarError):
    """任务更新失败（审计记录可能已写入）

    outcome 区分 MUTATION_FAILED（审计已落盘）、BOTH_FAILED 与 UNAUDITED（未尝试审计）。
    """

    def __init__(
        self,
        task_id: str,
        outcome: WriteOutcome,
        original_error: Exception,
    ) -> None:
        super().__init__(f"Failed to update task: {original_error}")
        self.task_id = task_id
        self.outcome = outcome
        self.original_error = original_error

    @property
    def audit_recorded(self) -> bool:
        return self.outcome == WriteOutcome.MUTATION_FAILED
