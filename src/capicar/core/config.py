"""配置常量模块 -- 可通过环境变量覆盖

包含表名、运行环境、状态机严格模式、Store 模式等可配置项。
"""

import os

# Airtable 表名
TASKS_TABLE: str = os.environ.get("CAPICAR_TASKS_TABLE", "Tasks")
STAFF_TABLE: str = os.environ.get("CAPICAR_STAFF_TABLE", "Staff")
AUDIT_LOG_TABLE: str = os.environ.get("CAPICAR_AUDIT_LOG_TABLE", "Audit_Log")

# 任务列表使用的视图
TASKS_VIEW: str = os.environ.get("CAPICAR_TASKS_VIEW", "Grid view")

# 日志中描述文本的截断长度
DETAILS_PREVIEW_LENGTH: int = 50


def _env_flag(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


def get_environment() -> str:
    """获取运行环境（development / production）"""
    return os.environ.get("CAPICAR_ENV", "production").strip().lower()


def is_development() -> bool:
    """开发模式下错误响应携带原始异常信息"""
    return get_environment() == "development"


def strict_transitions_enabled() -> bool:
    """严格模式：拒绝当前状态下不合法的动作"""
    return _env_flag("CAPICAR_STRICT_TRANSITIONS")


def get_store_mode() -> str:
    """获取 Store 模式：airtable（默认）/ memory（离线演示）"""
    mode = os.environ.get("CAPICAR_STORE_MODE", "airtable").strip().lower()
    return mode if mode in ("airtable", "memory") else "airtable"


def get_cors_origins() -> list[str]:
    """获取 CORS 允许的来源列表"""
    raw = os.environ.get("CAPICAR_CORS_ORIGINS", "*")
    return [origin.strip() for origin in raw.split(",") if origin.strip()] or ["*"]
