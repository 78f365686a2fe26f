from __future__ import annotations

import asyncio
from datetime import timedelta
from typing import Callable

import httpx
import pytest
import pytest_asyncio

from wechat_client.repositories.credential_store import CredentialStore
from wechat_client.webclient.WechatTokenProvider import WechatTokenProvider

BASE_URL = "https://api.weixin.qq.com"


class RecordingStore(CredentialStore):
    """Dict-backed store that records every put and can be told to fail."""

    def __init__(self, initial: dict[str, str] | None = None):
        self.items: dict[str, str] = dict(initial or {})
        self.puts: list[tuple[str, str, timedelta]] = []
        self.gets: list[str] = []
        self.get_error: Exception | None = None
        self.put_error: Exception | None = None

    async def get(self, key: str) -> tuple[str, bool]:
        self.gets.append(key)
        if self.get_error is not None:
            raise self.get_error
        if key in self.items:
            return self.items[key], True
        return "", False

    async def put(self, key: str, value: str, ttl: timedelta) -> None:
        self.puts.append((key, value, ttl))
        if self.put_error is not None:
            raise self.put_error
        self.items[key] = value


class FakeIssuer:
    """
    Stands in for api.weixin.qq.com. Queue JSON bodies per path; each request
    pops the next one (the last one repeats). Every request is recorded.
    """

    def __init__(self):
        self.responses: dict[str, list[tuple[int, dict]]] = {}
        self.requests: list[httpx.Request] = []
        self.gate: asyncio.Event | None = None

    def reply(self, path: str, status_code: int = 200, **kwargs) -> None:
        self.responses.setdefault(path, []).append((status_code, kwargs))

    def calls(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.gate is not None:
            await self.gate.wait()
        queue = self.responses.get(request.url.path)
        if not queue:
            return httpx.Response(404, json={"errcode": -1, "errmsg": "no route"})
        status_code, kwargs = queue.pop(0) if len(queue) > 1 else queue[0]
        return httpx.Response(status_code, **kwargs)


@pytest.fixture
def issuer() -> FakeIssuer:
    return FakeIssuer()


@pytest.fixture
def store() -> RecordingStore:
    return RecordingStore()


@pytest_asyncio.fixture
async def http(issuer: FakeIssuer):
    client = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(issuer))
    yield client
    await client.aclose()


@pytest.fixture
def make_provider(store: RecordingStore, http: httpx.AsyncClient) -> Callable[..., WechatTokenProvider]:
    def _make(**kwargs) -> WechatTokenProvider:
        kwargs.setdefault("store", store)
        return WechatTokenProvider(app_id="wx123", app_secret="s3cret", client=http, **kwargs)

    return _make
