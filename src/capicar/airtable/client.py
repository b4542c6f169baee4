"""AirtableClient -- Airtable REST API 调用封装

实现 core RecordStore 接口：list / get / create / update / delete。
基于 httpx.AsyncClient，连接在 lifespan 中创建、关闭时释放；不做重试与缓存。
"""

from typing import Any
from urllib.parse import quote

import httpx
import structlog

from capicar.core.config import STAFF_TABLE
from capicar.core.store.protocols import SortSpec, StoreRecord

from .config import AirtableConfig
from .exceptions import (
    AirtableError,
    AirtableRateLimitError,
    AirtableRecordNotFoundError,
    AirtableUnreachableError,
)

log = structlog.get_logger()

# 健康检查超时（应快速响应）
HEALTH_CHECK_TIMEOUT_S = 5

# Airtable 单页最多 100 条
PAGE_SIZE = 100


def _formula_literal(value: Any) -> str:
    if isinstance(value, bool):
        return "TRUE()" if value else "FALSE()"
    if isinstance(value, int | float):
        return str(value)
    escaped = str(value).replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def build_filter_formula(filters: dict[str, Any]) -> str:
    """将字段等值过滤转换为 filterByFormula

    {"staff_id": "CAT001"} -> "{staff_id} = 'CAT001'"
    多个条件使用 AND() 组合。
    """
    clauses = [f"{{{name}}} = {_formula_literal(value)}" for name, value in filters.items()]
    if len(clauses) == 1:
        return clauses[0]
    return f"AND({', '.join(clauses)})"


class AirtableClient:
    """Airtable REST 客户端

    一个实例对应一个 Base；表名在每次调用时传入。
    """

    def __init__(
        self,
        config: AirtableConfig,
        transport: httpx.AsyncBaseTransport | None = None,
        probe_table: str = STAFF_TABLE,
    ) -> None:
        """初始化 Airtable 客户端

        Args:
            config: 连接配置
            transport: 自定义 httpx transport（测试中注入 MockTransport）
            probe_table: 健康检查探测的表
        """
        self._config = config
        self._base_url = f"{config.api_url.rstrip('/')}/{config.base_id}"
        self._probe_table = probe_table
        self._http = httpx.AsyncClient(
            base_url=self._base_url,
            headers={
                "Authorization": f"Bearer {config.api_token.get_secret_value()}",
                "Content-Type": "application/json",
            },
            timeout=config.timeout_s,
            transport=transport,
        )

    @staticmethod
    def _path(table: str, record_id: str | None = None) -> str:
        path = f"/{quote(table, safe='')}"
        if record_id:
            path += f"/{quote(record_id, safe='')}"
        return path

    @staticmethod
    def _to_record(data: dict[str, Any]) -> StoreRecord:
        return StoreRecord(
            id=data["id"],
            fields=data.get("fields") or {},
            created_time=data.get("createdTime"),
        )

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        """发送请求并将传输层/HTTP 错误转换为 Airtable 异常（404 交由调用方处理）"""
        try:
            kwargs: dict[str, Any] = {"params": params, "json": json}
            if timeout is not None:
                kwargs["timeout"] = timeout
            resp = await self._http.request(method, path, **kwargs)
        except httpx.TransportError as e:
            log.error(
                "airtable_unreachable",
                method=method,
                path=path,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise AirtableUnreachableError(f"{self._base_url}{path}", e) from e

        if resp.status_code == 429:
            log.warning("airtable_rate_limited", method=method, path=path)
            raise AirtableRateLimitError()

        if resp.is_error and resp.status_code != 404:
            error_type, message = self._parse_error(resp)
            log.error(
                "airtable_request_failed",
                method=method,
                path=path,
                status_code=resp.status_code,
                error_type=error_type,
            )
            raise AirtableError(
                f"Airtable {method} {path} failed ({resp.status_code}): {message}",
                status_code=resp.status_code,
                error_type=error_type,
            )
        return resp

    @staticmethod
    def _parse_error(resp: httpx.Response) -> tuple[str, str]:
        """解析 Airtable 错误体：{"error": {"type", "message"}} 或 {"error": "NOT_FOUND"}"""
        try:
            error = resp.json().get("error")
        except ValueError:
            return "", resp.text
        if isinstance(error, dict):
            return str(error.get("type", "")), str(error.get("message", ""))
        if error:
            return str(error), str(error)
        return "", resp.text

    def _raise_for_missing(self, resp: httpx.Response, table: str, path: str) -> None:
        if resp.status_code == 404:
            error_type, message = self._parse_error(resp)
            raise AirtableError(
                f"Airtable resource not found: {path} ({error_type or message})",
                status_code=404,
                error_type=error_type,
            )

    async def list_records(
        self,
        table: str,
        *,
        filters: dict[str, Any] | None = None,
        sort: list[SortSpec] | None = None,
        view: str | None = None,
        max_records: int | None = None,
    ) -> list[StoreRecord]:
        """查询记录列表，自动跟随 offset 翻页"""
        path = self._path(table)
        params: dict[str, Any] = {"pageSize": PAGE_SIZE}
        if filters:
            params["filterByFormula"] = build_filter_formula(filters)
        if view:
            params["view"] = view
        if max_records is not None:
            params["maxRecords"] = max_records
        for i, spec in enumerate(sort or []):
            params[f"sort[{i}][field]"] = spec.field
            params[f"sort[{i}][direction]"] = spec.direction

        records: list[StoreRecord] = []
        offset: str | None = None
        while True:
            page_params = {**params, "offset": offset} if offset else params
            resp = await self._request("GET", path, params=page_params)
            self._raise_for_missing(resp, table, path)
            data = resp.json()
            records.extend(self._to_record(r) for r in data.get("records", []))
            offset = data.get("offset")
            if not offset:
                break

        log.debug("airtable_records_listed", table=table, count=len(records))
        return records

    async def get_record(self, table: str, record_id: str) -> StoreRecord | None:
        """按 record id 查询，404 返回 None"""
        resp = await self._request("GET", self._path(table, record_id))
        if resp.status_code == 404:
            return None
        return self._to_record(resp.json())

    async def create_record(self, table: str, fields: dict[str, Any]) -> StoreRecord:
        """创建记录"""
        path = self._path(table)
        body: dict[str, Any] = {"fields": fields}
        if self._config.typecast:
            body["typecast"] = True
        resp = await self._request("POST", path, json=body)
        self._raise_for_missing(resp, table, path)
        return self._to_record(resp.json())

    async def update_record(
        self,
        table: str,
        record_id: str,
        fields: dict[str, Any],
    ) -> StoreRecord:
        """PATCH 部分更新记录

        Raises:
            AirtableRecordNotFoundError: 记录不存在
        """
        body: dict[str, Any] = {"fields": fields}
        if self._config.typecast:
            body["typecast"] = True
        resp = await self._request("PATCH", self._path(table, record_id), json=body)
        if resp.status_code == 404:
            raise AirtableRecordNotFoundError(table, record_id)
        return self._to_record(resp.json())

    async def delete_record(self, table: str, record_id: str) -> bool:
        """删除记录，不存在时返回 False"""
        resp = await self._request("DELETE", self._path(table, record_id))
        if resp.status_code == 404:
            return False
        return bool(resp.json().get("deleted", False))

    async def health_check(self) -> bool:
        """检查 Airtable 可达性与凭据有效性

        读取探测表的一条记录；不抛出异常，所有异常内部捕获并返回 False。
        """
        try:
            resp = await self._request(
                "GET",
                self._path(self._probe_table),
                params={"maxRecords": 1},
                timeout=HEALTH_CHECK_TIMEOUT_S,
            )
            return resp.status_code == 200
        except Exception as e:
            log.debug("health_check_failed", table=self._probe_table, error=str(e))
            return False

    async def aclose(self) -> None:
        """释放底层连接池"""
        await self._http.aclose()
