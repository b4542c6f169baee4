"""问题上报路由

POST /api/issues/report: 写入详细审计记录后将任务移入异常池。
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict

from capicar.core.store import RecordStore

from ..deps import get_record_store
from ..errors import BadRequestError, error_summary
from ..responses import success_response
from ..services.task_service import TaskService

router = APIRouter()


class IssueReportRequest(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    task_id: str | None = None
    operator_id: str | None = None
    operator_name: str | None = None
    issue_type: str | None = None
    description: str | None = None
    timestamp: str | None = None
    task_status: str | None = None
    order_name: str | None = None


@router.post("/api/issues/report")
async def report_issue(
    body: IssueReportRequest,
    store: RecordStore = Depends(get_record_store),
):
    """上报任务问题

    - 400: 缺少 task_id / operator_id / issue_type / description
    - 404: 任务不存在
    """
    if not (body.task_id and body.operator_id and body.issue_type and body.description):
        raise BadRequestError(
            "Missing required fields: task_id, operator_id, issue_type, "
            "and description are required"
        )

    with error_summary("Failed to report issue"):
        await TaskService(store).report_issue(
            body.task_id,
            body.operator_id,
            body.issue_type,
            body.description,
            operator_name=body.operator_name,
            task_status=body.task_status,
            order_name=body.order_name,
            reported_at=body.timestamp,
        )

    return success_response(message="Issue reported successfully and logged for review")
