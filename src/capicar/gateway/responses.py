"""成功响应构造

领域对象按 camelCase 别名序列化（移动端模型字段名）。
"""

from typing import Any

from pydantic import BaseModel
from starlette.responses import JSONResponse

from capicar.core.mapper import utc_now_iso

# 看板/员工列表必须每次拉取最新数据
NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


def dump(value: Any) -> Any:
    """将 pydantic 模型（或其列表）转换为 JSON 兼容结构"""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, list):
        return [dump(v) for v in value]
    return value


def success_response(
    data: Any = None,
    *,
    status_code: int = 200,
    headers: dict[str, str] | None = None,
    **extra: Any,
) -> JSONResponse:
    """构造 {"success": true, "data": ..., ...} 响应"""
    content: dict[str, Any] = {"success": True}
    if data is not None:
        content["data"] = dump(data)
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def debug_headers(**values: str) -> dict[str, str]:
    """附带 X-Server-Timestamp 的调试响应头，键名 last_modified -> X-Last-Modified"""
    headers = {"X-Server-Timestamp": utc_now_iso()}
    for key, value in values.items():
        name = "X-" + "-".join(part.capitalize() for part in key.split("_"))
        headers[name] = value
    return headers
