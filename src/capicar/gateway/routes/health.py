"""健康检查路由

GET /health: Liveness 检查，永远返回 200。
GET /ready: Readiness 检查，探测 RecordStore（Airtable）可达性。
"""

import structlog
from fastapi import APIRouter, Request
from starlette.responses import JSONResponse

from capicar.core.mapper import utc_now_iso

log = structlog.get_logger()

router = APIRouter()


@router.get("/health")
async def health():
    """Liveness 检查 -- 永远返回 200"""
    return {"status": "OK", "timestamp": utc_now_iso()}


@router.get("/ready")
async def ready(request: Request):
    """Readiness 检查 -- 验证 RecordStore 可用性

    检查项：
    1. record_store: Store 已初始化且 health_check() 通过
    """
    checks: dict[str, str] = {}
    all_ok = True

    store = getattr(request.app.state, "record_store", None)
    if store is None:
        checks["record_store"] = "error: not initialized"
        all_ok = False
    else:
        try:
            if await store.health_check():
                checks["record_store"] = "ok"
            else:
                checks["record_store"] = "unreachable"
                all_ok = False
        except Exception as e:
            log.warning("health_check_error", error=str(e))
            checks["record_store"] = "unreachable"
            all_ok = False

    status_code = 200 if all_ok else 503
    status_text = "ready" if all_ok else "not_ready"

    return JSONResponse(
        status_code=status_code,
        content={
            "status": status_text,
            "checks": checks,
        },
    )
