"""RecordMapper -- Store 记录与领域对象互转

容忍缺失/畸形字段：
- 缺失字符串按字段默认为 "" 或 None，缺失布尔值为 False
- 日期解析失败时以当前时间替代并记录 warning，读取永不失败
- current_operator 接受纯值或单元素列表，按 staff_id 解析，解析不到视为无操作员
"""

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from datetime import UTC, datetime
from typing import Any

import structlog

from .models import AuditLogEntry, FulfillmentTask, StaffMember, TaskStatus
from .store.protocols import StoreRecord

log = structlog.get_logger()

OperatorResolver = Callable[[str], Awaitable[StaffMember | None]]

# FulfillmentTask 字段 -> Tasks 表字段
TASK_FIELD_NAMES: dict[str, str] = {
    "order_name": "order_name",
    "status": "status",
    "shipping_name": "shipping_name",
    "created_at": "created_at",
    "checklist_json": "checklist_json",
    "shipping_address1": "shipping_address1",
    "shipping_address2": "shipping_address2",
    "shipping_city": "shipping_city",
    "shipping_province": "shipping_province",
    "shipping_zip": "shipping_zip",
    "shipping_phone": "shipping_phone",
    "is_paused": "is_paused",
    "in_exception_pool": "in_exception_pool",
    "exception_reason": "exception_reason",
    "exception_logged_at": "exception_logged_at",
    "exception_notes": "exception_notes",
    "last_modified_at": "updated_at",
}

_OPTIONAL_STRING_FIELDS = (
    "shipping_address1",
    "shipping_address2",
    "shipping_city",
    "shipping_province",
    "shipping_zip",
    "shipping_phone",
    "exception_reason",
    "exception_logged_at",
    "exception_notes",
)


def to_iso(dt: datetime) -> str:
    """格式化为毫秒精度 UTC ISO-8601（'2024-05-01T10:00:00.000Z'）"""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def utc_now_iso() -> str:
    return to_iso(datetime.now(UTC))


def parse_timestamp(raw: Any) -> datetime:
    """解析时间戳：datetime / epoch 毫秒 / ISO-8601 字符串

    Raises:
        ValueError: 无法解析
    """
    if isinstance(raw, datetime):
        return raw
    if isinstance(raw, int | float) and not isinstance(raw, bool):
        try:
            return datetime.fromtimestamp(raw / 1000, UTC)
        except (OverflowError, OSError) as e:
            raise ValueError(f"timestamp out of range: {raw}") from e
    if isinstance(raw, str) and raw.strip():
        return datetime.fromisoformat(raw.strip())
    raise ValueError(f"unsupported timestamp value: {raw!r}")


def normalize_timestamp(raw: Any, *, record_id: str = "", field: str = "") -> str:
    """规范化时间字段，缺失或解析失败时返回当前时间"""
    if raw in (None, ""):
        return utc_now_iso()
    try:
        return to_iso(parse_timestamp(raw))
    except ValueError:
        log.warning(
            "date_parse_failed",
            record_id=record_id,
            field=field,
            raw_value=str(raw),
        )
        return utc_now_iso()


def extract_staff_id(raw: Any) -> str | None:
    """从 current_operator 原始值提取 staff_id（纯值或单元素列表）"""
    if isinstance(raw, list):
        raw = raw[0] if raw else None
    if raw is None:
        return None
    staff_id = str(raw).strip()
    return staff_id or None


def parse_status(raw: Any, *, record_id: str = "") -> TaskStatus:
    """解析任务状态，缺失或未知值回落到 Pending"""
    if not raw:
        return TaskStatus.PENDING
    try:
        return TaskStatus(raw)
    except ValueError:
        log.warning("unknown_task_status", record_id=record_id, raw_value=str(raw))
        return TaskStatus.PENDING


def _optional_str(value: Any) -> str | None:
    if value in (None, ""):
        return None
    return str(value)


def _task_field_values(task: FulfillmentTask) -> dict[str, Any]:
    """任务当前值按 Tasks 表字段名展开"""
    values: dict[str, Any] = {}
    for attr, field_name in TASK_FIELD_NAMES.items():
        value = getattr(task, attr)
        values[field_name] = value.value if isinstance(value, TaskStatus) else value
    values["current_operator"] = task.current_operator.id if task.current_operator else None
    return values


class RecordMapper:
    """Tasks / Staff / Audit_Log 记录映射器

    resolve_operator 为按 staff_id 查找员工的异步回调；未提供时 current_operator 恒为空。
    """

    def __init__(self, resolve_operator: OperatorResolver | None = None) -> None:
        self._resolve_operator = resolve_operator

    async def to_task(self, record: StoreRecord) -> FulfillmentTask:
        """映射单条 Tasks 记录"""
        f = record.fields
        operator = await self._lookup_operator(f.get("current_operator"), record.id)
        updated_at = f.get("updated_at")

        task = FulfillmentTask(
            id=record.id,
            order_name=str(f.get("order_name") or ""),
            status=parse_status(f.get("status"), record_id=record.id),
            shipping_name=str(f.get("shipping_name") or ""),
            created_at=normalize_timestamp(
                f.get("created_at"), record_id=record.id, field="created_at"
            ),
            checklist_json=str(f.get("checklist_json") or "[]"),
            current_operator=operator,
            is_paused=bool(f.get("is_paused") or False),
            in_exception_pool=bool(f.get("in_exception_pool") or False),
            last_modified_at=str(updated_at) if updated_at else None,
            **{name: _optional_str(f.get(name)) for name in _OPTIONAL_STRING_FIELDS},
        )
        task._source_fields = dict(f)
        task._mapped_fields = _task_field_values(task)
        return task

    async def to_tasks(self, records: Iterable[StoreRecord]) -> list[FulfillmentTask]:
        """批量映射，各记录的操作员查找并发执行，结果保持输入顺序"""
        records = list(records)
        if not records:
            return []
        tasks = await asyncio.gather(*(self.to_task(r) for r in records))
        log.debug("task_records_mapped", count=len(tasks))
        return list(tasks)

    async def _lookup_operator(self, raw: Any, record_id: str) -> StaffMember | None:
        staff_id = extract_staff_id(raw)
        if staff_id is None or self._resolve_operator is None:
            return None
        try:
            return await self._resolve_operator(staff_id)
        except Exception as e:
            log.warning(
                "operator_lookup_failed",
                record_id=record_id,
                staff_id=staff_id,
                error=str(e),
            )
            return None

    @staticmethod
    def to_staff(record: StoreRecord) -> StaffMember:
        """映射 Staff 记录，id 取 staff_id 字段而非 record id"""
        return StaffMember(
            id=str(record.fields.get("staff_id") or ""),
            name=str(record.fields.get("name") or ""),
        )

    @staticmethod
    def task_to_fields(task: FulfillmentTask) -> dict[str, Any]:
        """FulfillmentTask -> Tasks 表字段（to_task 的逆映射）

        映射后未改动的字段写回来源记录的原始值（未解析的 current_operator、
        畸形日期等），来源记录缺失的字段不写；被清空的字段写空字符串。
        """
        source = task._source_fields
        mapped = task._mapped_fields
        fields: dict[str, Any] = {}
        for name, value in _task_field_values(task).items():
            if name in mapped and value == mapped[name]:
                if name in source:
                    fields[name] = source[name]
                continue
            if value is not None:
                fields[name] = value
            elif name in mapped or name == "current_operator":
                fields[name] = ""
        return fields

    @staticmethod
    def audit_to_fields(entry: AuditLogEntry) -> dict[str, Any]:
        """AuditLogEntry -> Audit_Log 表字段

        old_value / new_value 为单选字段，不接受空字符串，空白时省略。
        """
        fields: dict[str, Any] = {
            "timestamp": entry.timestamp,
            "task_id": entry.task_id,
            "action_type": entry.action_type.value,
            "details": entry.details,
        }
        if entry.staff_record_id:
            fields["staff_id"] = [entry.staff_record_id]
        if entry.old_value and entry.old_value.strip():
            fields["old_value"] = entry.old_value.strip()
        if entry.new_value and entry.new_value.strip():
            fields["new_value"] = entry.new_value.strip()
        return fields
