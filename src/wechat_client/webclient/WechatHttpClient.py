from dataclasses import dataclass, replace
from typing import Awaitable, Callable, Optional, TypeVar

import httpx

from wechat_client.configs.logging_config import get_logger
from wechat_client.configs.settings import Settings
from wechat_client.errors import RemoteError, TransportError, is_stale_credential
from wechat_client.webclient.WechatTokenProvider import WechatTokenProvider

log = get_logger(__name__)

T = TypeVar("T")

MAX_ATTEMPTS = 2


@dataclass(frozen=True)
class RequestOptions:
    retryable: bool = True
    reload_access_token: bool = False

    def for_retry(self) -> "RequestOptions":
        return replace(self, retryable=False, reload_access_token=True)


def build_http_client(settings: Settings) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=settings.wechat_base_url,
        timeout=settings.HTTP_TIMEOUT_SECONDS,
        proxy=settings.wechat_proxy or None,
    )


class WechatHttpClient:
    """
    Runs calls that need an access token.

    A call rejected because the token is stale is retried once with a
    freshly issued token; everything else surfaces as raised.
    """

    def __init__(self, token_provider: WechatTokenProvider, client: httpx.AsyncClient = None):
        self.token_provider = token_provider
        self.session = client or token_provider.client

    async def with_access_token(
        self,
        task: Callable[[str], Awaitable[T]],
        options: Optional[RequestOptions] = None,
    ) -> T:
        opts = options or RequestOptions()

        for attempt in range(1, MAX_ATTEMPTS + 1):
            token = await self.token_provider.get_access_token(reload=opts.reload_access_token)
            try:
                return await task(token)
            except RemoteError as exc:
                if not is_stale_credential(exc) or not opts.retryable or attempt == MAX_ATTEMPTS:
                    raise
                log.warning(
                    "wechat.call.stale_token errcode=%s attempt=%s retrying_with_reload=true",
                    exc.code,
                    attempt,
                )
                opts = opts.for_retry()

        raise AssertionError("unreachable")

    async def request(self, method: str, url: str, *, access_token: Optional[str] = None, **kwargs) -> httpx.Response:
        params = dict(kwargs.pop("params", None) or {})
        if access_token is not None:
            params["access_token"] = access_token

        try:
            return await self.session.request(method, url, params=params, **kwargs)
        except httpx.HTTPError as exc:
            log.error("wechat.call.transport_error method=%s url=%s error=%s", method, url, str(exc))
            raise TransportError(f"{method} {url} failed: {exc}") from exc

    async def get(self, url: str, *, access_token: Optional[str] = None, **kwargs) -> httpx.Response:
        return await self.request("GET", url, access_token=access_token, **kwargs)

    async def post(self, url: str, *, access_token: Optional[str] = None, **kwargs) -> httpx.Response:
        return await self.request("POST", url, access_token=access_token, **kwargs)
