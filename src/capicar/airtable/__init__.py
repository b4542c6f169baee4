"""CapiCar Airtable -- 远程记录存储客户端

capicar.airtable 的公开接口导出。
"""

from .client import AirtableClient, build_filter_formula
from .config import AirtableConfig, load_airtable_config
from .exceptions import (
    AirtableError,
    AirtableRateLimitError,
    AirtableRecordNotFoundError,
    AirtableUnreachableError,
)

__all__ = [
    "AirtableClient",
    "build_filter_formula",
    "AirtableConfig",
    "load_airtable_config",
    "AirtableError",
    "AirtableUnreachableError",
    "AirtableRateLimitError",
    "AirtableRecordNotFoundError",
]
