"""TraceMiddleware -- 为任务操作绑定 task_id

/api/tasks/{task_id}[/...] 请求的日志均带上 task_id 与 trace_id，
便于在一次动作的审计写入、任务更新日志之间关联。
"""

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# /api/tasks 下不是 task_id 的路径段
_RESERVED_SEGMENTS = frozenset({"action"})


class TraceMiddleware(BaseHTTPMiddleware):
    """任务级追踪中间件"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        parts = [p for p in request.url.path.split("/") if p]
        # ["api", "tasks", "<task_id>", ...]
        if len(parts) >= 3 and parts[0] == "api" and parts[1] == "tasks":
            task_id = parts[2]
            if task_id not in _RESERVED_SEGMENTS:
                structlog.contextvars.bind_contextvars(
                    task_id=task_id,
                    trace_id=f"trace-{task_id}",
                )

        return await call_next(request)
