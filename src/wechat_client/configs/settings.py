from __future__ import annotations

from typing import Any, Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from wechat_client.domain.entities.wechat import MiniAppEnv


class Settings(BaseSettings):
    """
    Central configuration.

    - Values loaded from the environment and `.env`
    - Issuer safety margin and network timeout are fixed defaults, overridable for tests
    """

    # ----------------------------
    # Service
    # ----------------------------
    SERVICE_NAME: str = "wechat-client"
    LOG_LEVEL: str = "INFO"

    # ----------------------------
    # WeChat application identity
    # ----------------------------
    wechat_app_id: str = ""
    wechat_app_secret: str = ""
    wechat_env: MiniAppEnv = MiniAppEnv.RELEASE
    wechat_proxy: str | None = None  # e.g. http://127.0.0.1:7890
    wechat_base_url: str = "https://api.weixin.qq.com"

    # ----------------------------
    # Credential lifecycle
    # ----------------------------
    HTTP_TIMEOUT_SECONDS: float = 30.0
    TOKEN_SAFETY_MARGIN_SECONDS: int = 2

    # ----------------------------
    # Credential store
    # ----------------------------
    credential_store: Literal["memory", "redis"] = "memory"
    redis_url: str = "redis://localhost:6379/0"
    redis_key_prefix: str = "wechat:"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("wechat_env", mode="before")
    @classmethod
    def _default_env(cls, value: Any) -> Any:
        # unset env means the released mini program
        if value is None or value == "":
            return MiniAppEnv.RELEASE
        return value

    @field_validator("wechat_proxy", mode="before")
    @classmethod
    def _empty_proxy(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
