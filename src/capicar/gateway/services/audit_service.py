"""AuditService -- 审计日志写入与作业历史

log_action() 是尽力而为的写入：任何失败只记录日志并返回 False，从不抛出，
调用方据此区分两阶段写入的结果。
"""

import asyncio
from typing import Any

import structlog

from capicar.core.audit import (
    action_icon,
    format_action_for_display,
    format_audit_details,
    map_action_type,
)
from capicar.core.config import AUDIT_LOG_TABLE
from capicar.core.mapper import RecordMapper, extract_staff_id, utc_now_iso
from capicar.core.models import AuditLogEntry, WorkHistoryItem
from capicar.core.store import RecordStore, SortSpec, StoreRecord

from .staff_service import UNKNOWN_OPERATOR_NAME, StaffService

log = structlog.get_logger()

# 视为"无操作员"的 operator_id
ANONYMOUS_OPERATORS = frozenset({"", "unknown"})

SYNC_REQUIRED_FIELDS = ("timestamp", "action_type", "staff_id", "task_id")


class AuditService:
    """审计业务服务"""

    def __init__(self, store: RecordStore, staff_service: StaffService) -> None:
        self._store = store
        self._staff = staff_service

    async def _resolve_staff(self, operator_id: str | None) -> tuple[str | None, str]:
        """返回 (Staff record id, 展示名称)，无法关联员工时 record id 为 None"""
        if operator_id is None or operator_id in ANONYMOUS_OPERATORS:
            return None, "Unknown Operator"
        record = await self._staff.find_staff_record(operator_id)
        if record is None:
            log.warning("audit_staff_not_found", operator_id=operator_id)
            return None, f"Unknown ({operator_id})"
        return record.id, str(record.fields.get("name") or f"Unknown ({operator_id})")

    async def log_action(
        self,
        operator_id: str | None,
        task_id: str,
        action_type: str,
        old_value: str | None = None,
        new_value: str | None = None,
        details: str | None = None,
        timestamp: str | None = None,
    ) -> bool:
        """追加一条审计记录

        Args:
            operator_id: 操作员 staff_id，"" / "unknown" 表示匿名
            task_id: 任务 record id
            action_type: 原始动作名（映射到审计词表后写入，原名保留在 details 中）
            old_value: 变更前的值
            new_value: 变更后的值
            details: 描述
            timestamp: 客户端提供的时间戳（离线同步），缺省为当前时间

        Returns:
            True 写入成功，False 写入失败（已记录日志）
        """
        staff_name = UNKNOWN_OPERATOR_NAME
        try:
            staff_record_id, staff_name = await self._resolve_staff(operator_id)
            entry = AuditLogEntry(
                timestamp=timestamp or utc_now_iso(),
                task_id=task_id,
                action_type=map_action_type(action_type),
                staff_record_id=staff_record_id,
                old_value=old_value,
                new_value=new_value,
                details=format_audit_details(action_type, details, staff_name),
            )
            await self._store.create_record(
                AUDIT_LOG_TABLE, RecordMapper.audit_to_fields(entry)
            )
        except Exception as e:
            log.error(
                "audit_log_failed",
                task_id=task_id,
                operator_id=operator_id,
                action_type=action_type,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

        log.info(
            "audit_log_created",
            task_id=task_id,
            action_type=action_type,
            staff_name=staff_name,
        )
        return True

    async def get_work_history(self, task_id: str) -> list[WorkHistoryItem]:
        """任务作业历史，按时间升序；员工名称并发解析"""
        records = await self._store.list_records(
            AUDIT_LOG_TABLE,
            filters={"task_id": task_id},
            sort=[SortSpec(field="timestamp", direction="asc")],
        )
        names = await asyncio.gather(*(self._operator_name(r) for r in records))

        history = []
        for record, operator_name in zip(records, names, strict=True):
            f = record.fields
            action_type = str(f.get("action_type") or "")
            details = str(f.get("details") or "")
            history.append(
                WorkHistoryItem(
                    id=record.id,
                    timestamp=f.get("timestamp"),
                    action=format_action_for_display(action_type, details),
                    operator_name=operator_name,
                    icon=action_icon(action_type),
                    details=details,
                )
            )
        return history

    async def _operator_name(self, record: StoreRecord) -> str:
        staff_record_id = extract_staff_id(record.fields.get("staff_id"))
        if staff_record_id is None:
            return UNKNOWN_OPERATOR_NAME
        return await self._staff.get_name_by_record_id(staff_record_id)

    async def sync_logs(self, logs: list[Any]) -> tuple[int, list[dict[str, Any]]]:
        """批量写入客户端缓存的审计记录，逐条报告失败

        Returns:
            (成功条数, [{"log": 原始条目, "error": 原因}, ...])
        """
        synced = 0
        errors: list[dict[str, Any]] = []

        for entry in logs:
            if not isinstance(entry, dict) or not all(
                entry.get(name) for name in SYNC_REQUIRED_FIELDS
            ):
                errors.append(
                    {
                        "log": entry,
                        "error": "Missing required fields: timestamp, action_type, staff_id, task_id",
                    }
                )
                continue

            ok = await self.log_action(
                str(entry["staff_id"]),
                str(entry["task_id"]),
                str(entry["action_type"]),
                _optional_text(entry.get("old_value")),
                _optional_text(entry.get("new_value")),
                _optional_text(entry.get("details")),
                timestamp=str(entry["timestamp"]),
            )
            if ok:
                synced += 1
            else:
                errors.append({"log": entry, "error": "Audit log creation failed"})

        if errors:
            log.warning(
                "audit_log_sync_partial",
                synced_count=synced,
                total_logs=len(logs),
                error_count=len(errors),
            )
        else:
            log.info("audit_log_sync_completed", synced_count=synced)
        return synced, errors


def _optional_text(value: Any) -> str | None:
    if value in (None, ""):
        return None
    return str(value)
