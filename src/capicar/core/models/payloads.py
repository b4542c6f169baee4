"""动作 payload 定义

客户端随 POST /api/tasks/action 提交的附加数据，字段按动作各取所需。
"""

from pydantic import BaseModel, ConfigDict, Field


class ActionPayload(BaseModel):
    """任务动作 payload

    - START_PACKING: weight + dimensions
    - ENTER_CORRECTION: errorType
    - REPORT_EXCEPTION: reason (+ notes)
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    weight: str | int | float | None = None
    dimensions: str | None = None
    error_type: str | None = Field(default=None, alias="errorType")
    reason: str | None = None
    notes: str | None = None
