"""看板路由

GET /api/dashboard: 按简化状态分组的任务列表与统计，禁用缓存。
"""

from fastapi import APIRouter, Depends

from capicar.core.store import RecordStore

from ..deps import get_record_store
from ..errors import error_summary
from ..responses import NO_CACHE_HEADERS, debug_headers, success_response
from ..services.task_service import TaskService

router = APIRouter()


@router.get("/api/dashboard")
async def get_dashboard(store: RecordStore = Depends(get_record_store)):
    """看板数据

    分组：pending / picking / packed / inspecting（含 Correction_Needed、Correcting）/
    completed / paused / cancelled；stats 含各组计数与 total。
    """
    with error_summary("Failed to fetch dashboard data"):
        data = await TaskService(store).dashboard()

    headers = {
        **NO_CACHE_HEADERS,
        **debug_headers(dashboard_generated=data.last_updated),
    }
    return success_response(data, headers=headers)
