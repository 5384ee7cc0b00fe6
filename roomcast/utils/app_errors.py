"""Application error type and codes.

`AppError` is the only exception raised across the domain/API boundary. The
registered FastAPI handler turns it into an `ApiFailure` body carrying both
the internal `errcode` and the short public `error` slug clients match on.
"""

import inspect
from enum import Enum, IntEnum
from uuid import uuid4


class HttpStatusCode(IntEnum):
    OK = 200
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    CONFLICT = 409
    UNPROCESSABLE_ENTITY = 422
    INTERNAL_SERVER_ERROR = 500
    SERVICE_UNAVAILABLE = 503


class AppErrorCode(str, Enum):
    E_INTERNAL_ERROR = "E_INTERNAL_ERROR"
    E_INVALID_PARAMS = "E_INVALID_PARAMS"
    E_INVALID_REQUEST = "E_INVALID_REQUEST"
    E_UNAUTHORIZED = "E_UNAUTHORIZED"
    E_FORBIDDEN = "E_FORBIDDEN"
    E_NOT_FOUND = "E_NOT_FOUND"

    E_LIVE_DISABLED = "E_LIVE_DISABLED"
    E_LIVE_MISCONFIGURED = "E_LIVE_MISCONFIGURED"
    E_LIVE_ALREADY_LIVE = "E_LIVE_ALREADY_LIVE"
    E_LIVE_NOT_PUBLISHER = "E_LIVE_NOT_PUBLISHER"
    E_LIVE_NO_LOCK = "E_LIVE_NO_LOCK"
    E_LIVE_INVALID_TRANSITION = "E_LIVE_INVALID_TRANSITION"
    E_LIVE_ENUMERATION_FAILED = "E_LIVE_ENUMERATION_FAILED"

    E_CONFIG_INVALID = "E_CONFIG_INVALID"

    def __str__(self) -> str:
        return self.value


# Public slug sent to clients for each code
_PUBLIC_ERRORS: dict[AppErrorCode, str] = {
    AppErrorCode.E_INTERNAL_ERROR: "internal",
    AppErrorCode.E_INVALID_PARAMS: "invalid-params",
    AppErrorCode.E_INVALID_REQUEST: "invalid-request",
    AppErrorCode.E_UNAUTHORIZED: "unauthorized",
    AppErrorCode.E_FORBIDDEN: "forbidden",
    AppErrorCode.E_NOT_FOUND: "not_found",
    AppErrorCode.E_LIVE_DISABLED: "live-disabled",
    AppErrorCode.E_LIVE_MISCONFIGURED: "live-misconfigured",
    AppErrorCode.E_LIVE_ALREADY_LIVE: "already-live",
    AppErrorCode.E_LIVE_NOT_PUBLISHER: "not-publisher",
    AppErrorCode.E_LIVE_NO_LOCK: "no-live-lock",
    AppErrorCode.E_LIVE_INVALID_TRANSITION: "invalid-transition",
    AppErrorCode.E_LIVE_ENUMERATION_FAILED: "internal",
    AppErrorCode.E_CONFIG_INVALID: "live-misconfigured",
}


def public_error(errcode: AppErrorCode | str) -> str:
    try:
        return _PUBLIC_ERRORS[AppErrorCode(errcode)]
    except ValueError:
        return "internal"


class AppError(Exception):
    """Error raised by domain services and API dependencies."""

    def __init__(
        self,
        errcode: AppErrorCode | str = AppErrorCode.E_INTERNAL_ERROR,
        errmesg: str = "We are sorry, an error occurred.",
        status_code: int = HttpStatusCode.INTERNAL_SERVER_ERROR,
    ):
        super().__init__(errmesg)
        self.errcode = str(errcode)
        self.errmesg = errmesg
        self.status_code = int(status_code)
        self.error = public_error(errcode)
        self.erresid = uuid4().hex[:10]

        frame = inspect.currentframe()
        caller = frame.f_back if frame else None
        if caller is not None:
            module_name = caller.f_globals.get("__name__", caller.f_code.co_filename)
            self.caller_info = f"{module_name}:{caller.f_code.co_name}:{caller.f_lineno}"
        else:
            self.caller_info = "unknown"

    def __repr__(self) -> str:
        return f"AppError(errcode={self.errcode!r}, status_code={self.status_code}, errmesg={self.errmesg!r})"
