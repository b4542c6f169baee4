"""依赖注入模块 -- 通过 FastAPI Depends 注入 RecordStore 实例

RecordStore 实例通过 app.state 管理，在 lifespan 中初始化/清理。
"""

from fastapi import Request

from capicar.core.store import RecordStore


def get_record_store(request: Request) -> RecordStore:
    """从 app.state 获取 RecordStore 实例"""
    return request.app.state.record_store
