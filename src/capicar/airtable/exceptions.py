"""Airtable 异常体系

所有异常均为 core StoreError 子类，调用方无需依赖本包即可捕获。
客户端不做重试，瞬时故障（网络、限流）原样抛给调用方。
"""

from capicar.core.store.protocols import RecordNotFoundError, StoreError


class AirtableError(StoreError):
    """Airtable API 调用失败

    Attributes:
        status_code: HTTP 状态码（网络错误时为 None）
        error_type: Airtable 返回的错误类型（如 INVALID_REQUEST_UNKNOWN）
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        error_type: str = "",
    ) -> None:
        super().__init__(message, status_code=status_code)
        self.error_type = error_type


class AirtableUnreachableError(AirtableError):
    """Airtable 不可达（连接失败、超时、DNS 解析失败等）"""

    def __init__(self, url: str, original_error: Exception) -> None:
        super().__init__(f"Airtable 不可达: {url} -- {original_error}")
        self.url = url
        self.original_error = original_error


class AirtableRateLimitError(AirtableError):
    """触发 Airtable 限流（HTTP 429）"""

    def __init__(self, message: str = "Airtable rate limit exceeded") -> None:
        super().__init__(message, status_code=429, error_type="RATE_LIMIT_REACHED")


class AirtableRecordNotFoundError(AirtableError, RecordNotFoundError):
    """记录不存在（HTTP 404）"""

    def __init__(self, table: str, record_id: str) -> None:
        RecordNotFoundError.__init__(self, table, record_id)
        self.error_type = "NOT_FOUND"
