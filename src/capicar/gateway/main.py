"""FastAPI 应用主文件

app 创建 + lifespan 管理：RecordStore 初始化/关闭 + 中间件 + 路由注册。
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from capicar.airtable import AirtableClient, load_airtable_config
from capicar.core.config import get_cors_origins, get_environment, get_store_mode
from capicar.core.store import InMemoryRecordStore

from .errors import register_exception_handlers
from .middleware.logging_config import setup_logfire, setup_logging
from .middleware.logging_mw import LoggingMiddleware
from .middleware.trace_mw import TraceMiddleware
from .routes import audit_logs, dashboard, health, issues, staff, tasks

log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理：启动时创建 RecordStore，关闭时释放连接"""
    store_mode = get_store_mode()

    if store_mode == "memory":
        # 离线演示模式：进程内存储，重启即丢失
        app.state.record_store = InMemoryRecordStore()
        app.state.airtable_client = None
        log.info("record_store_initialized", mode="memory")
    else:
        airtable_config = load_airtable_config()
        if not airtable_config.is_configured:
            log.warning(
                "airtable_not_configured",
                message="AIRTABLE_PERSONAL_ACCESS_TOKEN / AIRTABLE_BASE_ID 未设置",
            )
        airtable_client = AirtableClient(airtable_config)
        app.state.record_store = airtable_client
        app.state.airtable_client = airtable_client
        log.info(
            "record_store_initialized",
            mode="airtable",
            base_id=airtable_config.base_id,
            timeout_s=airtable_config.timeout_s,
        )

    log.info("gateway_started", environment=get_environment())

    yield

    # 关闭：释放 Airtable 连接池
    airtable_client = getattr(app.state, "airtable_client", None)
    if airtable_client is not None:
        await airtable_client.aclose()


def create_app() -> FastAPI:
    """创建 FastAPI 应用实例"""
    app = FastAPI(
        title="CapiCar Gateway",
        version="0.1.0",
        description="CapiCar 履约任务 API（Airtable 后端）",
        lifespan=lifespan,
    )

    # 注册中间件（顺序：先 Trace 后 Logging，Logging 在最外层先清空 contextvars）
    app.add_middleware(TraceMiddleware)
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_cors_origins(),
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[
            "X-Request-ID",
            "X-Server-Timestamp",
            "X-Last-Modified",
            "X-Action-Performed",
            "X-Dashboard-Generated",
            "X-Staff-Generated",
        ],
    )

    # 初始化日志
    setup_logging()
    setup_logfire(app)

    register_exception_handlers(app)

    # 注册路由
    app.include_router(dashboard.router, tags=["dashboard"])
    app.include_router(tasks.router, tags=["tasks"])
    app.include_router(staff.router, tags=["staff"])
    app.include_router(issues.router, tags=["issues"])
    app.include_router(audit_logs.router, tags=["audit-logs"])
    app.include_router(health.router, tags=["health"])

    return app


# 默认 app 实例（uvicorn 入口）
app = create_app()
