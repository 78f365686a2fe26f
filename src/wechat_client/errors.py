from __future__ import annotations

from typing import Optional


class AppError(Exception):
    """Base error for expected failures."""

    def __init__(self, message: str, *, http_status: int = 400):
        super().__init__(message)
        self.message = message
        self.http_status = http_status


class WechatError(AppError):
    """Anything raised by the WeChat client."""

    def __init__(self, message: str, *, http_status: int = 502):
        super().__init__(message, http_status=http_status)


class TransportError(WechatError):
    """Network failure talking to the WeChat API."""


class ResponseDecodeError(TransportError):
    """Response body could not be parsed."""

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class StoreError(WechatError):
    """Credential store backend failure."""

    def __init__(self, message: str):
        super().__init__(message, http_status=503)


class RemoteError(WechatError):
    """
    Non-zero errcode reported by WeChat that is not a stale credential.

    `code` and `message` are the issuer's errcode/errmsg, untouched.
    """

    def __init__(self, code: int, message: str):
        super().__init__(message)
        self.code = code

    def __str__(self) -> str:
        return f"wechat error {self.code}: {self.message}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RemoteError):
            return NotImplemented
        return type(self) is type(other) and (self.code, self.message) == (other.code, other.message)

    def __hash__(self) -> int:
        return hash((type(self), self.code, self.message))


class StaleCredentialError(RemoteError):
    """The presented access token can't be used; a fresh one must be issued."""


class InvalidCredentialError(StaleCredentialError):
    pass


class AccessTokenExpiredError(StaleCredentialError):
    pass


class InvalidAccessTokenError(StaleCredentialError):
    pass


# errcode -> stale credential condition
ERR_CODE_INVALID_CREDENTIAL = 40001  # wrong AppSecret or invalid access_token
ERR_CODE_ACCESS_TOKEN_EXPIRED = 42001
ERR_CODE_INVALID_ACCESS_TOKEN = 40014

STALE_CREDENTIAL_ERRORS: dict[int, type[StaleCredentialError]] = {
    ERR_CODE_INVALID_CREDENTIAL: InvalidCredentialError,
    ERR_CODE_ACCESS_TOKEN_EXPIRED: AccessTokenExpiredError,
    ERR_CODE_INVALID_ACCESS_TOKEN: InvalidAccessTokenError,
}


def check_response_error(code: Optional[int], message: Optional[str]) -> Optional[RemoteError]:
    """
    Map a WeChat errcode/errmsg pair to an exception instance (or None on success).
    """
    if not code:
        return None
    stale = STALE_CREDENTIAL_ERRORS.get(code)
    if stale is not None:
        return stale(code, message or "")
    return RemoteError(code, message or "")


def is_stale_credential(exc: BaseException) -> bool:
    return isinstance(exc, StaleCredentialError)
