"""structlog 配置模块

dev 模式：pretty print 可读输出
json 模式：结构化 JSON 输出
Logfire APM：LOGFIRE_SEND_TO_LOGFIRE 环境变量控制，false 时降级为纯本地日志。
"""

import logging
import os
import re
from typing import Any

import structlog
from fastapi import FastAPI

# Airtable Personal Access Token：pat<14 位 id>.<64 位 hex>
_PAT_PATTERN = re.compile(r"\bpat[A-Za-z0-9]{10,}\.[A-Za-z0-9]+")
_SECRET_KEYS = frozenset({"api_token", "authorization"})


def redact_airtable_token(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """structlog processor：遮蔽日志中的 Airtable token"""
    for key, value in event_dict.items():
        if key in _SECRET_KEYS:
            event_dict[key] = "***"
        elif isinstance(value, str) and "pat" in value:
            event_dict[key] = _PAT_PATTERN.sub("pat***", value)
    return event_dict


def setup_logging() -> None:
    """初始化 structlog 配置

    根据 CAPICAR_LOG_FORMAT 环境变量选择渲染模式：
    - "json": 结构化 JSON 输出（生产环境）
    - "dev" (默认): pretty print 可读输出
    """
    log_format = os.environ.get("CAPICAR_LOG_FORMAT", "dev")
    log_level = os.environ.get("CAPICAR_LOG_LEVEL", "INFO")

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        redact_airtable_token,
    ]

    if log_format == "json":
        renderer = structlog.processors.JSONRenderer(ensure_ascii=False)
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # httpx 每个请求都会打 INFO 日志，Airtable 调用已有自己的事件
    logging.getLogger("httpx").setLevel(logging.WARNING)


def setup_logfire(app: FastAPI | None = None) -> None:
    """Logfire 可选初始化

    LOGFIRE_SEND_TO_LOGFIRE 环境变量控制：
    - "true": 启用 Logfire APM（需要 LOGFIRE_TOKEN），同时采集 httpx 出站调用
    - "false" (默认): 降级为纯本地日志
    """
    send_to_logfire = os.environ.get("LOGFIRE_SEND_TO_LOGFIRE", "false").lower()
    if send_to_logfire == "true":
        try:
            import logfire

            logfire.configure()
            if app is not None:
                logfire.instrument_fastapi(app)
            logfire.instrument_httpx()
        except Exception:
            # Logfire 初始化失败不影响系统运行
            structlog.get_logger().warning(
                "logfire_init_failed",
                message="Logfire 初始化失败，降级为纯本地日志",
            )
