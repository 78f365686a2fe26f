from __future__ import annotations

import json

import pytest

from wechat_client.domain.entities.wechat import (
    MiniAppEnv,
    PushTemplateConfig,
    QrCodeRequest,
    SubscribeMessageRequest,
)
from wechat_client.errors import RemoteError, ResponseDecodeError
from wechat_client.services.miniapp_service import MiniAppService
from wechat_client.webclient.WechatHttpClient import WechatHttpClient
from wechat_client.webclient.WechatTokenProvider import ACCESS_TOKEN_KEY

TOKEN_PATH = "/cgi-bin/token"
SEND_PATH = "/cgi-bin/message/subscribe/send"
QR_PATH = "/wxa/getwxacodeunlimit"


@pytest.fixture
def make_service(make_provider):
    def _make(env: MiniAppEnv = MiniAppEnv.RELEASE) -> MiniAppService:
        return MiniAppService(
            WechatHttpClient(make_provider()), app_id="wx123", app_secret="s3cret", env=env
        )

    return _make


@pytest.mark.asyncio
async def test_code2session(issuer, make_service) -> None:
    issuer.reply("/sns/jscode2session", json={"openid": "o1", "session_key": "k1", "unionid": "u1"})

    result = await make_service().js_code_to_session("CODE")

    assert (result.openid, result.session_key, result.unionid) == ("o1", "k1", "u1")
    (req,) = issuer.requests
    assert req.url.params["js_code"] == "CODE"
    assert req.url.params["grant_type"] == "authorization_code"
    assert "access_token" not in req.url.params


@pytest.mark.asyncio
async def test_code2session_error(issuer, make_service) -> None:
    issuer.reply("/sns/jscode2session", json={"errcode": 40029, "errmsg": "invalid code"})

    with pytest.raises(RemoteError) as excinfo:
        await make_service().js_code_to_session("CODE")
    assert excinfo.value.code == 40029


@pytest.mark.parametrize(
    "env,state",
    [
        (MiniAppEnv.RELEASE, "formal"),
        (MiniAppEnv.TRIAL, "trial"),
        (MiniAppEnv.DEVELOP, "developer"),
    ],
)
@pytest.mark.asyncio
async def test_send_message_fills_state_from_env(issuer, store, make_service, env, state) -> None:
    store.items[ACCESS_TOKEN_KEY] = "TOK1"
    issuer.reply(SEND_PATH, json={"errcode": 0, "errmsg": "ok"})
    msg = SubscribeMessageRequest(template_id="T1", touser="o1", data={"thing1": {"value": "hi"}})

    await make_service(env).send_message(msg)

    (req,) = issuer.calls(SEND_PATH)
    body = json.loads(req.content)
    assert body["miniprogram_state"] == state
    assert body["touser"] == "o1"
    assert req.url.params["access_token"] == "TOK1"
    assert msg.miniprogram_state == ""


@pytest.mark.asyncio
async def test_send_message_keeps_explicit_state(issuer, store, make_service) -> None:
    store.items[ACCESS_TOKEN_KEY] = "TOK1"
    issuer.reply(SEND_PATH, json={"errcode": 0, "errmsg": "ok"})
    msg = SubscribeMessageRequest(template_id="T1", touser="o1", miniprogram_state="trial")

    await make_service(MiniAppEnv.DEVELOP).send_message(msg)

    body = json.loads(issuer.calls(SEND_PATH)[0].content)
    assert body["miniprogram_state"] == "trial"


@pytest.mark.asyncio
async def test_send_message_retries_on_expired_token(issuer, store, make_service) -> None:
    store.items[ACCESS_TOKEN_KEY] = "TOK_OLD"
    issuer.reply(TOKEN_PATH, json={"access_token": "TOK_NEW", "expires_in": 7200})
    issuer.reply(SEND_PATH, json={"errcode": 42001, "errmsg": "access_token expired"})
    issuer.reply(SEND_PATH, json={"errcode": 0, "errmsg": "ok"})

    await make_service().send_message(SubscribeMessageRequest(template_id="T1", touser="o1"))

    tokens = [r.url.params["access_token"] for r in issuer.calls(SEND_PATH)]
    assert tokens == ["TOK_OLD", "TOK_NEW"]


@pytest.mark.asyncio
async def test_send_message_with_template(issuer, store, make_service) -> None:
    store.items[ACCESS_TOKEN_KEY] = "TOK1"
    issuer.reply(SEND_PATH, json={"errcode": 0, "errmsg": "ok"})
    template = PushTemplateConfig(
        template_id="T9",
        template_keys=["amount1", "thing7", "phrase2"],
        page="pages/index/index",
    )

    await make_service().send_message_with_template(template, ["¥123.45元", "内容收益"], "o1")

    body = json.loads(issuer.calls(SEND_PATH)[0].content)
    assert body["template_id"] == "T9"
    assert body["page"] == "pages/index/index"
    assert body["lang"] == "zh_CN"
    assert body["miniprogram_state"] == "formal"
    assert body["data"] == {"amount1": {"value": "¥123.45元"}, "thing7": {"value": "内容收益"}}


@pytest.mark.asyncio
async def test_qr_code_returns_image_bytes(issuer, store, make_service) -> None:
    store.items[ACCESS_TOKEN_KEY] = "TOK1"
    png = b"\x89PNG\r\n\x1a\nfake"
    issuer.reply(QR_PATH, content=png, headers={"content-type": "image/jpeg"})

    image = await make_service().get_qr_code(QrCodeRequest(scene="id=1", width=430))

    assert image == png
    body = json.loads(issuer.calls(QR_PATH)[0].content)
    assert body == {"scene": "id=1", "width": 430}


@pytest.mark.asyncio
async def test_qr_code_json_error_under_200(issuer, store, make_service) -> None:
    store.items[ACCESS_TOKEN_KEY] = "TOK1"
    issuer.reply(QR_PATH, json={"errcode": 41030, "errmsg": "invalid page"})

    with pytest.raises(RemoteError) as excinfo:
        await make_service().get_qr_code(QrCodeRequest(scene="id=1", page="pages/missing"))
    assert excinfo.value.code == 41030


@pytest.mark.asyncio
async def test_user_phone_number(issuer, store, make_service) -> None:
    store.items[ACCESS_TOKEN_KEY] = "TOK1"
    issuer.reply(
        "/wxa/business/getuserphonenumber",
        json={
            "errcode": 0,
            "errmsg": "ok",
            "phone_info": {"phoneNumber": "13800000000", "purePhoneNumber": "13800000000", "countryCode": "86"},
        },
    )

    result = await make_service().get_user_phone_number("PHONE_CODE")

    assert result.phone_info.phone_number == "13800000000"
    (req,) = issuer.calls("/wxa/business/getuserphonenumber")
    assert json.loads(req.content) == {"code": "PHONE_CODE"}


@pytest.mark.asyncio
async def test_qr_code_json_without_errcode_is_not_an_image(issuer, store, make_service) -> None:
    store.items[ACCESS_TOKEN_KEY] = "TOK1"
    issuer.reply(QR_PATH, json={"errcode": 0, "errmsg": "ok"})

    with pytest.raises(ResponseDecodeError) as excinfo:
        await make_service().get_qr_code(QrCodeRequest(scene="id=1"))
    assert excinfo.value.message == "no image in response"
    assert len(issuer.calls(QR_PATH)) == 1
