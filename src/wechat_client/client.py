from __future__ import annotations

from datetime import timedelta
from typing import Optional

import httpx

from wechat_client.configs.logging_config import get_logger, setup_logging
from wechat_client.configs.settings import Settings, get_settings
from wechat_client.repositories.credential_store import (
    CredentialStore,
    InMemoryCredentialStore,
    RedisCredentialStore,
)
from wechat_client.repositories.redis_client import RedisClient
from wechat_client.services.jssdk_service import JsSdkService
from wechat_client.services.miniapp_service import MiniAppService
from wechat_client.webclient.WechatHttpClient import WechatHttpClient, build_http_client
from wechat_client.webclient.WechatTokenProvider import WechatTokenProvider

log = get_logger(__name__)


class WechatClient:
    """
    Wires the token provider, the token-bound HTTP client and the services
    around one shared httpx.AsyncClient.

        async with WechatClient(settings, store) as wx:
            token = await wx.get_access_token()
            await wx.miniapp.send_message(msg)
    """

    def __init__(
        self,
        settings: Settings,
        store: CredentialStore,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.settings = settings
        self.store = store
        self.session = client or build_http_client(settings)
        self._redis: Optional[RedisClient] = None  # set when this client opened the connection

        self.token_provider = WechatTokenProvider(
            app_id=settings.wechat_app_id,
            app_secret=settings.wechat_app_secret,
            store=store,
            client=self.session,
            safety_margin=timedelta(seconds=settings.TOKEN_SAFETY_MARGIN_SECONDS),
        )
        self.http_client = WechatHttpClient(token_provider=self.token_provider, client=self.session)
        self.miniapp = MiniAppService(
            self.http_client,
            app_id=settings.wechat_app_id,
            app_secret=settings.wechat_app_secret,
            env=settings.wechat_env,
        )
        self.jssdk = JsSdkService(
            self.http_client,
            self.token_provider,
            app_id=settings.wechat_app_id,
            app_secret=settings.wechat_app_secret,
        )

    async def get_access_token(self, reload: bool = False) -> str:
        return await self.token_provider.get_access_token(reload=reload)

    async def get_js_ticket(self, reload: bool = False) -> str:
        return await self.token_provider.get_js_ticket(reload=reload)

    async def aclose(self) -> None:
        await self.session.aclose()
        if self._redis is not None:
            await self._redis.close()

    async def __aenter__(self) -> "WechatClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()


async def create_wechat_client(
    settings: Settings | None = None,
    store: CredentialStore | None = None,
    *,
    configure_logging: bool = False,
) -> WechatClient:
    settings = settings or get_settings()
    if configure_logging:
        setup_logging(settings.LOG_LEVEL, service_name=settings.SERVICE_NAME)
    owned_redis = None
    if store is None:
        if settings.credential_store == "redis":
            owned_redis = RedisClient()
            conn = await owned_redis.connect(settings.redis_url)
            store = RedisCredentialStore(conn, key_prefix=settings.redis_key_prefix)
        else:
            store = InMemoryCredentialStore()
    log.info(
        "wechat.client.create app_id=%s env=%s store=%s proxy=%s",
        settings.wechat_app_id,
        settings.wechat_env,
        type(store).__name__,
        bool(settings.wechat_proxy),
    )
    wx = WechatClient(settings, store)
    wx._redis = owned_redis
    return wx
