"""审计日志同步路由

POST /api/audit-logs/sync: 批量接收客户端离线缓存的审计记录，逐条报告失败。
"""

from typing import Any

from fastapi import APIRouter, Body, Depends
from starlette.responses import JSONResponse

from capicar.core.store import RecordStore

from ..deps import get_record_store
from ..errors import BadRequestError, error_summary
from ..services.audit_service import AuditService
from ..services.staff_service import StaffService

router = APIRouter()


@router.post("/api/audit-logs/sync")
async def sync_audit_logs(
    body: dict[str, Any] = Body(...),
    store: RecordStore = Depends(get_record_store),
):
    """批量同步审计记录

    至少一条写入成功时 success 为 true；每条失败记录附带原始条目与原因。
    """
    logs = body.get("logs")
    if not isinstance(logs, list):
        raise BadRequestError("Invalid request: logs array is required")

    with error_summary("Failed to sync audit logs"):
        service = AuditService(store, StaffService(store))
        synced, errors = await service.sync_logs(logs)

    total = len(logs)
    if errors:
        message = f"Synced {synced}/{total} audit logs with {len(errors)} errors"
    else:
        message = f"Successfully synced all {synced} audit logs"

    return JSONResponse(
        content={
            "success": synced > 0,
            "synced_count": synced,
            "total_logs": total,
            "errors": errors,
            "message": message,
        }
    )
