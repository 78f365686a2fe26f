from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class MiniAppEnv(str, Enum):
    RELEASE = "release"  # 正式版
    TRIAL = "trial"  # 体验版
    DEVELOP = "develop"  # 开发版

    def __str__(self) -> str:
        return self.value


# subscribe-message `miniprogram_state` values per environment
MINIPROGRAM_STATES: dict[MiniAppEnv, str] = {
    MiniAppEnv.RELEASE: "formal",
    MiniAppEnv.TRIAL: "trial",
    MiniAppEnv.DEVELOP: "developer",
}


class ErrResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    errcode: int = 0
    errmsg: str = ""


class AccessTokenResponse(ErrResponse):
    access_token: str = ""
    expires_in: int = 0


class JsTicketResponse(ErrResponse):
    ticket: str = ""
    expires_in: int = 0


class JsCode2SessionResponse(ErrResponse):
    openid: str = ""
    session_key: str = ""
    unionid: str = ""


class SnsOauth2Response(ErrResponse):
    access_token: str = ""
    expires_in: int = 0
    refresh_token: str = ""
    openid: str = ""
    scope: str = ""
    is_snapshotuser: int = 0
    unionid: str = ""


class QrCodeRequest(BaseModel):
    """Body of `getwxacodeunlimit`. Unset fields are left out of the payload."""

    scene: str | None = None  # <= 32 visible chars
    page: str | None = None  # e.g. pages/index/index, no leading slash
    check_path: bool | None = None
    env_version: str | None = None  # release / trial / develop
    width: int | None = None  # 280..1280 px, default 430
    auto_color: bool | None = None
    line_color: dict[str, Any] | None = None  # {"r": 0, "g": 0, "b": 0}
    is_hyaline: bool | None = None

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class PushTemplateConfig(BaseModel):
    template_id: str
    template_no: int = 0
    template_keys: list[str] = Field(default_factory=list)
    page: str = ""


class SubscribeMessageRequest(BaseModel):
    template_id: str
    page: str = ""
    touser: str
    data: dict[str, Any] = Field(default_factory=dict)  # {"key1": {"value": ...}}
    miniprogram_state: str = ""  # developer / trial / formal
    lang: str = "zh_CN"

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump()


class Watermark(BaseModel):
    timestamp: int = 0
    appid: str = ""


class PhoneInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    phone_number: str = Field(default="", alias="phoneNumber")
    pure_phone_number: str = Field(default="", alias="purePhoneNumber")
    country_code: str = Field(default="", alias="countryCode")
    watermark: Watermark = Field(default_factory=Watermark)


class GetUserPhoneNumberResponse(ErrResponse):
    phone_info: PhoneInfo = Field(default_factory=PhoneInfo)


class JsSDKConfigResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    app_id: str = Field(alias="appId")
    timestamp: str
    nonce_str: str = Field(alias="nonceStr")
    signature: str
