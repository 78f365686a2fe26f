from __future__ import annotations

import hashlib
import secrets
import string
from typing import Mapping

from wechat_client.configs.logging_config import get_logger
from wechat_client.domain.entities.wechat import JsSDKConfigResponse, SnsOauth2Response
from wechat_client.utils.response import load_success_response
from wechat_client.utils.time_utils import unix_seconds
from wechat_client.webclient.WechatHttpClient import WechatHttpClient
from wechat_client.webclient.WechatTokenProvider import WechatTokenProvider

log = get_logger(__name__)

BASE62 = string.digits + string.ascii_uppercase + string.ascii_lowercase


def random_base62(n: int) -> str:
    return "".join(secrets.choice(BASE62) for _ in range(n))


def generate_signature(params: Mapping[str, str]) -> str:
    """
    JS-SDK signature: sort `k=v` pairs, join with `&`, SHA-1, lowercase hex.

    Defined by WeChat; must match byte for byte.
    """
    pairs = sorted(f"{k}={v}" for k, v in params.items())
    return hashlib.sha1("&".join(pairs).encode("utf-8")).hexdigest()


class JsSdkService:
    """Web-page side: OAuth2 code exchange and `wx.config` parameters."""

    def __init__(
        self,
        http_client: WechatHttpClient,
        token_provider: WechatTokenProvider,
        *,
        app_id: str,
        app_secret: str,
    ) -> None:
        self._http = http_client
        self._tokens = token_provider
        self._app_id = app_id
        self._app_secret = app_secret

    async def sns_oauth2(self, code: str) -> SnsOauth2Response:
        resp = await self._http.get(
            "/sns/oauth2/access_token",
            headers={"Accept": "application/json"},
            params={
                "appid": self._app_id,
                "secret": self._app_secret,
                "code": code,
                "grant_type": "authorization_code",
            },
        )
        return load_success_response(resp, SnsOauth2Response)

    async def get_js_sdk_config(self, url: str) -> JsSDKConfigResponse:
        ticket = await self._tokens.get_js_ticket(reload=False)
        timestamp = str(unix_seconds())
        nonce = random_base62(16)
        signature = generate_signature(
            {
                "noncestr": nonce,
                "jsapi_ticket": ticket,
                "timestamp": timestamp,
                "url": url,
            }
        )
        log.info("jssdk.config url=%s timestamp=%s", url, timestamp)
        return JsSDKConfigResponse(
            app_id=self._app_id,
            timestamp=timestamp,
            nonce_str=nonce,
            signature=signature,
        )
