from datetime import timedelta
from typing import Awaitable, Callable, Optional

import httpx

from wechat_client.configs.logging_config import get_logger
from wechat_client.domain.entities.wechat import AccessTokenResponse, JsTicketResponse
from wechat_client.errors import TransportError
from wechat_client.repositories.credential_store import CredentialStore
from wechat_client.utils.response import load_success_response
from wechat_client.webclient.SingleFlight import SingleFlight

log = get_logger(__name__)

ACCESS_TOKEN_KEY = "AccessToken"
JS_TICKET_KEY = "JsTicket"

DEFAULT_SAFETY_MARGIN = timedelta(seconds=2)


def cache_ttl(expires_in: int, margin: timedelta = DEFAULT_SAFETY_MARGIN) -> timedelta:
    """TTL to cache a credential the issuer says lives `expires_in` seconds."""
    ttl = timedelta(seconds=expires_in) - margin
    return max(ttl, timedelta(0))


class WechatTokenProvider:
    """
    Hands out the access token and the JS-SDK ticket.

    Cached values are served from the credential store; misses and forced
    reloads go to WeChat through a SingleFlight so that a burst of callers
    produces one issuance request per key.
    """

    def __init__(
        self,
        app_id: str,
        app_secret: str,
        store: CredentialStore,
        client: httpx.AsyncClient,
        safety_margin: timedelta = DEFAULT_SAFETY_MARGIN,
        single_flight: Optional[SingleFlight] = None,
    ):
        self.app_id = app_id
        self.app_secret = app_secret
        self.store = store
        self.client = client
        self.safety_margin = safety_margin

        self._sf = single_flight or SingleFlight()

    async def get_access_token(self, reload: bool = False) -> str:
        return await self._get(ACCESS_TOKEN_KEY, reload, self._fetch_access_token)

    async def get_js_ticket(self, reload: bool = False) -> str:
        return await self._get(JS_TICKET_KEY, reload, self._fetch_js_ticket)

    async def _get(
        self, key: str, reload: bool, fetch: Callable[[], Awaitable[tuple[str, int]]]
    ) -> str:
        if not reload:
            value, found = await self.store.get(key)
            if found:
                return value

        async def fetch_and_cache() -> str:
            value, expires_in = await fetch()
            await self._cache(key, value, expires_in)
            return value

        log.info("token.load key=%s reload=%s", key, reload)
        return await self._sf.do(key, fetch_and_cache)

    async def _cache(self, key: str, value: str, expires_in: int) -> None:
        ttl = cache_ttl(expires_in, self.safety_margin)
        try:
            await self.store.put(key, value, ttl)
        except Exception as exc:
            # the credential is still good for this call
            log.warning("token.cache_failed key=%s error=%s", key, str(exc))
            return
        log.info("token.cached key=%s ttl=%s", key, int(ttl.total_seconds()))

    async def _fetch_access_token(self) -> tuple[str, int]:
        log.info("token.fetch.start key=%s app_id=%s", ACCESS_TOKEN_KEY, self.app_id)
        resp = await self._get_json(
            "/cgi-bin/token",
            {
                "grant_type": "client_credential",
                "appid": self.app_id,
                "secret": self.app_secret,
            },
        )
        result = load_success_response(resp, AccessTokenResponse)
        log.info("token.fetch.done key=%s expires_in=%s", ACCESS_TOKEN_KEY, result.expires_in)
        return result.access_token, result.expires_in

    async def _fetch_js_ticket(self) -> tuple[str, int]:
        access_token = await self.get_access_token(reload=False)

        log.info("token.fetch.start key=%s app_id=%s", JS_TICKET_KEY, self.app_id)
        resp = await self._get_json(
            "/cgi-bin/ticket/getticket",
            {"access_token": access_token, "type": "jsapi"},
        )
        result = load_success_response(resp, JsTicketResponse)
        log.info("token.fetch.done key=%s expires_in=%s", JS_TICKET_KEY, result.expires_in)
        return result.ticket, result.expires_in

    async def _get_json(self, path: str, params: dict) -> httpx.Response:
        try:
            return await self.client.get(path, params=params)
        except httpx.HTTPError as exc:
            log.error("token.fetch.transport_error path=%s error=%s", path, str(exc))
            raise TransportError(f"GET {path} failed: {exc}") from exc
