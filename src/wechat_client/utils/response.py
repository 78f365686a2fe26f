from __future__ import annotations

from typing import TypeVar

import httpx
from pydantic import ValidationError

from wechat_client.configs.logging_config import get_logger
from wechat_client.domain.entities.wechat import ErrResponse
from wechat_client.errors import ResponseDecodeError, check_response_error

log = get_logger(__name__)

R = TypeVar("R", bound=ErrResponse)


def load_error_response(resp: httpx.Response) -> ErrResponse:
    try:
        return ErrResponse.model_validate_json(resp.content)
    except ValidationError as exc:
        raise ResponseDecodeError(
            f"unreadable error body (http {resp.status_code})", status_code=resp.status_code
        ) from exc


def load_success_response(resp: httpx.Response, model: type[R]) -> R:
    """
    Parse a WeChat JSON response into `model` and raise the classified errcode, if any.

    Non-2xx bodies are read as a bare errcode/errmsg pair.
    """
    if resp.is_error:
        err = load_error_response(resp)
        log.info(
            "wechat.response.http_error status=%s errcode=%s path=%s",
            resp.status_code,
            err.errcode,
            resp.request.url.path,
        )
        exc = check_response_error(err.errcode, err.errmsg)
        if exc is None:
            raise ResponseDecodeError(
                f"http {resp.status_code} without errcode", status_code=resp.status_code
            )
        raise exc

    if not resp.is_success:
        raise ResponseDecodeError(f"unknown error: http {resp.status_code}", status_code=resp.status_code)

    try:
        result = model.model_validate_json(resp.content)
    except ValidationError as exc:
        raise ResponseDecodeError(
            f"malformed {model.__name__} body", status_code=resp.status_code
        ) from exc

    exc = check_response_error(result.errcode, result.errmsg)
    if exc is not None:
        log.info(
            "wechat.response.errcode errcode=%s path=%s", result.errcode, resp.request.url.path
        )
        raise exc
    return result
