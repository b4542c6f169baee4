"""错误响应 -- 统一错误包络与异常处理器

所有错误响应形如 {"success": false, "error": "...", "message": "..."}。

- 业务异常（core.exceptions）由异常处理器映射为 400 / 404 / 409
- 路由体包裹在 error_summary("Failed to ...") 中，意外异常转换为 500，
  message 仅在开发模式（CAPICAR_ENV=development）下为原始异常信息
"""

from collections.abc import Iterator
from contextlib import contextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse

from capicar.core.config import is_development
from capicar.core.exceptions import (
    ActionValidationError,
    IllegalTransitionError,
    StaffNotFoundError,
    TaskNotFoundError,
)
from capicar.core.store import RecordNotFoundError

log = structlog.get_logger()

GENERIC_ERROR_MESSAGE = "Something went wrong"


class ApiError(Exception):
    """可直接转换为错误包络的异常"""

    status_code = 500

    def __init__(self, error: str, message: str | None = None) -> None:
        super().__init__(error)
        self.error = error
        self.message = message


class BadRequestError(ApiError):
    status_code = 400


class NotFoundError(ApiError):
    status_code = 404


def error_response(
    status_code: int,
    error: str,
    message: str | None = None,
) -> JSONResponse:
    """构造错误包络响应"""
    content: dict[str, object] = {"success": False, "error": error}
    if message is not None:
        content["message"] = message
    return JSONResponse(status_code=status_code, content=content)


def public_message(exc: Exception) -> str:
    """对外展示的异常信息：开发模式为原始信息，否则为通用文案"""
    return str(exc) if is_development() else GENERIC_ERROR_MESSAGE


# 由异常处理器负责映射的异常，error_summary 不包装
_PASSTHROUGH = (
    ApiError,
    ActionValidationError,
    TaskNotFoundError,
    StaffNotFoundError,
    IllegalTransitionError,
    RecordNotFoundError,
)


@contextmanager
def error_summary(summary: str) -> Iterator[None]:
    """将路由体内的意外异常转换为 500 ApiError

    Args:
        summary: 错误摘要，如 "Failed to fetch task"
    """
    try:
        yield
    except _PASSTHROUGH:
        raise
    except Exception as e:
        log.error(
            "request_failed",
            summary=summary,
            error=str(e),
            error_type=type(e).__name__,
            exc_info=True,
        )
        raise ApiError(summary, public_message(e)) from e


async def _api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return error_response(exc.status_code, exc.error, exc.message)


async def _validation_handler(request: Request, exc: ActionValidationError) -> JSONResponse:
    return error_response(400, str(exc))


async def _task_not_found_handler(request: Request, exc: TaskNotFoundError) -> JSONResponse:
    return error_response(404, "Task not found")


async def _staff_not_found_handler(request: Request, exc: StaffNotFoundError) -> JSONResponse:
    return error_response(404, "Staff member not found")


async def _record_not_found_handler(request: Request, exc: RecordNotFoundError) -> JSONResponse:
    return error_response(404, "Record not found", public_message(exc))


async def _illegal_transition_handler(
    request: Request, exc: IllegalTransitionError
) -> JSONResponse:
    log.warning(
        "illegal_transition_rejected",
        current_status=exc.current.value,
        action=exc.action.value,
    )
    return error_response(409, str(exc))


async def _request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """请求体无法解析（非法 JSON / 类型不符）-> 400"""
    errors = exc.errors()
    message = "; ".join(
        f"{'.'.join(str(p) for p in e.get('loc', ()))}: {e.get('msg', '')}" for e in errors
    )
    log.info("request_body_invalid", errors=len(errors))
    return error_response(400, "Invalid request data", message)


def register_exception_handlers(app: FastAPI) -> None:
    """注册异常处理器"""
    app.add_exception_handler(ApiError, _api_error_handler)
    app.add_exception_handler(ActionValidationError, _validation_handler)
    app.add_exception_handler(TaskNotFoundError, _task_not_found_handler)
    app.add_exception_handler(StaffNotFoundError, _staff_not_found_handler)
    app.add_exception_handler(RecordNotFoundError, _record_not_found_handler)
    app.add_exception_handler(IllegalTransitionError, _illegal_transition_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
