"""员工路由

员工对外 id 为 staff_id；Airtable record id 不出现在任何响应中。
签到/签退只回显，不持久化。
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from capicar.core.exceptions import StaffNotFoundError
from capicar.core.mapper import utc_now_iso
from capicar.core.models import CheckinAction
from capicar.core.store import RecordStore

from ..deps import get_record_store
from ..errors import BadRequestError, error_summary
from ..responses import NO_CACHE_HEADERS, debug_headers, success_response
from ..services.staff_service import StaffService

router = APIRouter()

_CHECKIN_VERBS = {
    CheckinAction.CHECK_IN: "checked in",
    CheckinAction.CHECK_OUT: "checked out",
}


class StaffRequest(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    name: str | None = None
    staff_id: str | None = None


class CheckinRequest(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True, coerce_numbers_to_str=True)

    staff_id: str | None = Field(default=None, alias="staffId")
    action: str | None = None


@router.get("/api/staff")
async def list_staff(store: RecordStore = Depends(get_record_store)):
    """全部员工（用于操作员选择），禁用缓存"""
    with error_summary("Failed to fetch staff"):
        staff = await StaffService(store).list_staff()

    generated_at = utc_now_iso()
    headers = {**NO_CACHE_HEADERS, **debug_headers(staff_generated=generated_at)}
    return success_response(staff, headers=headers)


@router.post("/api/staff/checkin")
async def checkin(body: CheckinRequest, store: RecordStore = Depends(get_record_store)):
    """签到 / 签退（仅校验员工存在并回显）"""
    if not body.staff_id or not body.action:
        raise BadRequestError("Missing required fields: staffId and action")

    with error_summary("Failed to process check-in"):
        staff = await StaffService(store).get_staff(body.staff_id)
    if staff is None:
        raise StaffNotFoundError(body.staff_id)

    try:
        action = CheckinAction(body.action)
    except ValueError:
        raise BadRequestError(f"Unknown check-in action: {body.action}") from None

    return success_response(
        {
            "staff": staff.model_dump(mode="json", by_alias=True),
            "action": action.value,
            "timestamp": utc_now_iso(),
            "message": f"{staff.name} {_CHECKIN_VERBS[action]} successfully",
        }
    )


@router.get("/api/staff/{staff_id}")
async def get_staff(staff_id: str, store: RecordStore = Depends(get_record_store)):
    with error_summary("Failed to fetch staff member"):
        staff = await StaffService(store).get_staff(staff_id)
    if staff is None:
        raise StaffNotFoundError(staff_id)
    return success_response(staff)


@router.post("/api/staff")
async def create_staff(body: StaffRequest, store: RecordStore = Depends(get_record_store)):
    """创建员工，未提供 staff_id 时自动生成"""
    if not body.name:
        raise BadRequestError("Staff name is required")

    with error_summary("Failed to create staff member"):
        staff = await StaffService(store).create_staff(body.name, body.staff_id)
    return success_response(staff, status_code=201)


@router.put("/api/staff/{staff_id}")
async def update_staff(
    staff_id: str,
    body: StaffRequest,
    store: RecordStore = Depends(get_record_store),
):
    if not body.name:
        raise BadRequestError("Staff name is required")

    with error_summary("Failed to update staff member"):
        staff = await StaffService(store).update_staff(staff_id, body.name)
    if staff is None:
        raise StaffNotFoundError(staff_id)
    return success_response(staff)


@router.delete("/api/staff/{staff_id}")
async def delete_staff(staff_id: str, store: RecordStore = Depends(get_record_store)):
    with error_summary("Failed to delete staff member"):
        deleted = await StaffService(store).delete_staff(staff_id)
    if not deleted:
        raise StaffNotFoundError(staff_id)
    return success_response(message="Staff member deleted successfully")
