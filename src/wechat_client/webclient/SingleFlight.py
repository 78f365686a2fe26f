import asyncio
from typing import Any, Awaitable, Callable, Dict, TypeVar

from wechat_client.configs.logging_config import get_logger

log = get_logger(__name__)

T = TypeVar("T")


class SingleFlight:
    """
    Collapses concurrent calls for the same key into one in-flight fetch.

    The fetch runs as its own task, so a waiter that gets cancelled detaches
    without cancelling the fetch for everyone else. The key is released as
    soon as the fetch finishes; the next call starts a fresh one.
    """

    def __init__(self):
        self._calls: Dict[str, asyncio.Task] = {}

    def in_flight(self, key: str) -> bool:
        return key in self._calls

    async def do(self, key: str, fn: Callable[[], Awaitable[T]]) -> T:
        task = self._calls.get(key)
        if task is None:
            task = asyncio.create_task(self._run(key, fn), name=f"singleflight:{key}")
            task.add_done_callback(_retrieve_exception)
            self._calls[key] = task
            log.debug("singleflight.start key=%s", key)
        else:
            log.debug("singleflight.join key=%s", key)

        return await asyncio.shield(task)

    async def _run(self, key: str, fn: Callable[[], Awaitable[Any]]) -> Any:
        try:
            return await fn()
        finally:
            if self._calls.get(key) is asyncio.current_task():
                del self._calls[key]


def _retrieve_exception(task: asyncio.Task) -> None:
    # every waiter may have been cancelled; don't let asyncio report the error as unretrieved
    if not task.cancelled():
        task.exception()
