from __future__ import annotations

from typing import Any, Optional, Sequence

from wechat_client.configs.logging_config import get_logger
from wechat_client.domain.entities.wechat import (
    MINIPROGRAM_STATES,
    ErrResponse,
    GetUserPhoneNumberResponse,
    JsCode2SessionResponse,
    MiniAppEnv,
    PushTemplateConfig,
    QrCodeRequest,
    SubscribeMessageRequest,
)
from wechat_client.errors import ResponseDecodeError, check_response_error
from wechat_client.utils.response import load_error_response, load_success_response
from wechat_client.webclient.WechatHttpClient import RequestOptions, WechatHttpClient

log = get_logger(__name__)


class MiniAppService:
    """Mini-program endpoints: login, QR codes, subscribe messages, phone numbers."""

    def __init__(
        self,
        http_client: WechatHttpClient,
        *,
        app_id: str,
        app_secret: str,
        env: MiniAppEnv = MiniAppEnv.RELEASE,
    ) -> None:
        self._http = http_client
        self._app_id = app_id
        self._app_secret = app_secret
        self._env = env

    async def js_code_to_session(self, code: str) -> JsCode2SessionResponse:
        log.info("miniapp.code2session.start app_id=%s", self._app_id)
        resp = await self._http.get(
            "/sns/jscode2session",
            headers={"Accept": "application/json"},
            params={
                "appid": self._app_id,
                "secret": self._app_secret,
                "js_code": code,
                "grant_type": "authorization_code",
            },
        )
        return load_success_response(resp, JsCode2SessionResponse)

    async def get_qr_code(
        self, request: QrCodeRequest, options: Optional[RequestOptions] = None
    ) -> bytes:
        """
        Unlimited mini-program code. Returns the image bytes.

        WeChat answers errors with a JSON body, sometimes under HTTP 200.
        """
        payload = request.to_payload()

        async def task(access_token: str) -> bytes:
            resp = await self._http.post(
                "/wxa/getwxacodeunlimit", access_token=access_token, json=payload
            )
            content_type = resp.headers.get("content-type", "")
            if resp.status_code == 200 and "json" not in content_type:
                return resp.content

            err = load_error_response(resp)
            exc = check_response_error(err.errcode, err.errmsg)
            if exc is None:
                raise ResponseDecodeError("no image in response", status_code=resp.status_code)
            raise exc

        image = await self._http.with_access_token(task, options)
        log.info("miniapp.qrcode.done scene=%s bytes=%s", request.scene, len(image))
        return image

    def _with_state(self, msg: SubscribeMessageRequest) -> SubscribeMessageRequest:
        if msg.miniprogram_state:
            return msg
        return msg.model_copy(update={"miniprogram_state": MINIPROGRAM_STATES[self._env]})

    async def send_message(
        self, msg: SubscribeMessageRequest, options: Optional[RequestOptions] = None
    ) -> None:
        payload = self._with_state(msg).to_payload()

        async def task(access_token: str) -> None:
            resp = await self._http.post(
                "/cgi-bin/message/subscribe/send", access_token=access_token, json=payload
            )
            load_success_response(resp, ErrResponse)

        await self._http.with_access_token(task, options)
        log.info(
            "miniapp.message.sent template_id=%s state=%s",
            msg.template_id,
            payload["miniprogram_state"],
        )

    async def get_user_phone_number(
        self, code: str, options: Optional[RequestOptions] = None
    ) -> GetUserPhoneNumberResponse:
        async def task(access_token: str) -> GetUserPhoneNumberResponse:
            resp = await self._http.post(
                "/wxa/business/getuserphonenumber",
                access_token=access_token,
                json={"code": code},
            )
            return load_success_response(resp, GetUserPhoneNumberResponse)

        return await self._http.with_access_token(task, options)

    async def send_message_with_template(
        self, template: PushTemplateConfig, values: Sequence[Any], to_user: str
    ) -> None:
        # keys without a value are dropped
        data = {key: {"value": value} for key, value in zip(template.template_keys, values)}
        msg = SubscribeMessageRequest(
            template_id=template.template_id,
            page=template.page,
            touser=to_user,
            data=data,
            lang="zh_CN",
        )
        await self.send_message(msg, RequestOptions(retryable=True))
