"""LoggingMiddleware -- 请求级日志

为每个 HTTP 请求生成 request_id，与当前 Store 模式一起绑定到 structlog contextvars。
"""

import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from ulid import ULID


def _store_mode(request: Request) -> str:
    """当前 app 使用的 Store：airtable / memory"""
    if getattr(request.app.state, "airtable_client", None) is not None:
        return "airtable"
    return "memory"


class LoggingMiddleware(BaseHTTPMiddleware):
    """请求级日志中间件 -- 为每个请求生成 request_id"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = str(ULID())

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            store_mode=_store_mode(request),
        )

        log = structlog.get_logger()
        await log.ainfo("request_started")
        started = time.perf_counter()

        response = await call_next(request)

        await log.ainfo(
            "request_completed",
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
        )

        # 在响应头中返回 request_id
        response.headers["X-Request-ID"] = request_id
        return response
