"""AirtableConfig -- Airtable 连接配置加载

从环境变量加载配置，在 lifespan 中构造一次并注入客户端。
"""

import os

import structlog
from pydantic import BaseModel, Field, SecretStr

log = structlog.get_logger()


class AirtableConfig(BaseModel):
    """Airtable 连接配置 -- 从环境变量加载

    环境变量:
        AIRTABLE_PERSONAL_ACCESS_TOKEN: Personal Access Token
        AIRTABLE_BASE_ID: Base ID（app 开头）
        AIRTABLE_API_URL: REST API 根地址
        AIRTABLE_TIMEOUT_S: 请求超时（秒，默认 30）
    """

    api_token: SecretStr = Field(
        default=SecretStr(""),
        description="Personal Access Token",
    )
    base_id: str = Field(default="", description="Base ID")
    api_url: str = Field(
        default="https://api.airtable.com/v0",
        description="REST API 根地址",
    )
    timeout_s: int = Field(default=30, ge=1, description="请求超时（秒）")
    typecast: bool = Field(
        default=False,
        description="写入时是否让 Airtable 自动转换字段类型",
    )

    @property
    def is_configured(self) -> bool:
        return bool(self.base_id and self.api_token.get_secret_value())


def load_airtable_config() -> AirtableConfig:
    """从环境变量加载 Airtable 配置

    环境变量映射:
        AIRTABLE_PERSONAL_ACCESS_TOKEN -> api_token (默认 "")
        AIRTABLE_BASE_ID -> base_id (默认 "")
        AIRTABLE_API_URL -> api_url (默认 "https://api.airtable.com/v0")
        AIRTABLE_TIMEOUT_S -> timeout_s (默认 30)
        AIRTABLE_TYPECAST -> typecast (默认 false)

    Returns:
        AirtableConfig 实例
    """
    kwargs: dict = {}

    if val := os.environ.get("AIRTABLE_PERSONAL_ACCESS_TOKEN"):
        kwargs["api_token"] = SecretStr(val)

    if val := os.environ.get("AIRTABLE_BASE_ID"):
        kwargs["base_id"] = val

    if val := os.environ.get("AIRTABLE_API_URL"):
        kwargs["api_url"] = val

    if val := os.environ.get("AIRTABLE_TIMEOUT_S"):
        try:
            timeout_s = int(val)
            if timeout_s < 1:
                raise ValueError(val)
            kwargs["timeout_s"] = timeout_s
        except ValueError:
            log.warning(
                "invalid_timeout_config",
                env_var="AIRTABLE_TIMEOUT_S",
                value=val,
                fallback=30,
            )
            # 使用默认值，不阻塞启动

    if val := os.environ.get("AIRTABLE_TYPECAST"):
        kwargs["typecast"] = val.strip().lower() in ("1", "true", "yes", "on")

    return AirtableConfig(**kwargs)
