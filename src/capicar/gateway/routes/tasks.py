"""任务路由

GET  /api/tasks/{task_id}: 任务详情
POST /api/tasks/action: 执行任务动作（状态流转 + 审计）
PUT  /api/tasks/{task_id}/checklist: 替换拣货清单
GET  /api/tasks/{task_id}/history: 作业历史
"""

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict

from capicar.core.mapper import utc_now_iso
from capicar.core.models import ActionPayload
from capicar.core.store import RecordStore

from ..deps import get_record_store
from ..errors import BadRequestError, NotFoundError, error_summary
from ..responses import debug_headers, success_response
from ..services.task_service import TaskService

router = APIRouter()


class TaskActionRequest(BaseModel):
    """任务动作请求体，必填字段在路由中校验以返回统一错误文案"""

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    task_id: str | None = None
    action: str | None = None
    operator_id: str | None = None
    payload: ActionPayload | None = None


class ChecklistUpdateRequest(BaseModel):
    """清单更新请求体"""

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    checklist_json: str | list[Any] | None = None
    operator_id: str | None = None


@router.get("/api/tasks/{task_id}")
async def get_task(task_id: str, store: RecordStore = Depends(get_record_store)):
    """任务详情，不存在返回 404"""
    with error_summary("Failed to fetch task"):
        task = await TaskService(store).get_task(task_id)

    if task is None:
        raise NotFoundError("Task not found")

    headers = debug_headers(last_modified=task.last_modified_at or "unknown")
    return success_response(task, headers=headers)


@router.post("/api/tasks/action")
async def perform_task_action(
    body: TaskActionRequest,
    store: RecordStore = Depends(get_record_store),
):
    """执行任务动作

    - 400: 缺少 task_id / action、未知动作、payload 不完整
    - 404: 任务不存在
    - 409: 严格模式下动作对当前状态不合法
    - 500: 任务更新失败（审计记录可能已写入）
    """
    if not body.task_id or not body.action:
        raise BadRequestError("Missing required fields: task_id and action")

    performed_at = utc_now_iso()
    with error_summary("Failed to perform task action"):
        result = await TaskService(store).perform_action(
            body.task_id,
            body.action,
            body.operator_id,
            body.payload,
        )

    headers = debug_headers(
        last_modified=result.task.last_modified_at or "unknown",
        action_performed=body.action,
    )
    headers["X-Server-Timestamp"] = performed_at
    return success_response(
        result.task,
        headers=headers,
        action=body.action,
        timestamp=performed_at,
    )


@router.put("/api/tasks/{task_id}/checklist")
async def update_checklist(
    task_id: str,
    body: ChecklistUpdateRequest,
    store: RecordStore = Depends(get_record_store),
):
    """替换拣货清单，粒度过细不写审计"""
    if body.checklist_json is None:
        raise BadRequestError("checklist_json is required")

    with error_summary("Failed to update checklist"):
        task = await TaskService(store).update_checklist(task_id, body.checklist_json)

    return success_response(task)


@router.get("/api/tasks/{task_id}/history")
async def get_task_history(task_id: str, store: RecordStore = Depends(get_record_store)):
    """作业历史（审计记录按时间升序）"""
    with error_summary("Failed to fetch task history"):
        history = await TaskService(store).get_work_history(task_id)

    return success_response(history)
