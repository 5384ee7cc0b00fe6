import time
import traceback
import uuid
from collections.abc import Callable
from contextlib import asynccontextmanager
from os import environ

import logfire
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from granian import Granian
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

from roomcast.api.errors import app_error_handler, app_validation_exception_handler
from roomcast.app_config import LiveSettings, validate_live_config
from roomcast.domain.accounts.account_directory import AccountLookup
from roomcast.domain.live.live_context import LiveContext, build_live_context
from roomcast.shared.api.utils import api_failure, init_logger, load_routes
from roomcast.shared.config import config
from roomcast.utils.app_errors import AppError, AppErrorCode


class HTTPLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):  # type: ignore
        start_time = time.time()
        request_id = str(uuid.uuid4())[:8]

        logger.info(f"[{request_id}] {request.method} {request.url.path}")

        try:
            response = await call_next(request)

            process_time = (time.time() - start_time) * 1000
            logger.info(
                f"[{request_id}] {request.method} {request.url.path} - "
                f"Status: {response.status_code} - "
                f"Duration: {process_time:.2f}ms"
            )

            return response

        except Exception as exc:
            process_time = (time.time() - start_time) * 1000
            logger.error(
                f"[{request_id}] Unhandled exception in {request.method} {request.url.path} - "
                f"Duration: {process_time:.2f}ms - "
                f"Error: {type(exc).__name__}: {exc}\n"
                f"Traceback:\n{traceback.format_exc()}"
            )

            failure = api_failure(
                errcode=AppErrorCode.E_INTERNAL_ERROR.value,
                errmesg=f"Internal server error (request_id: {request_id})",
            )
            return ORJSONResponse(
                status_code=500,
                content=failure.model_dump(),
            )


def _configure_logfire(server: FastAPI) -> None:
    logger.info("Logfire initializing")

    logfire.configure(
        token=config.get_str("LOGFIRE_TOKEN") or None,
        service_name="roomcast",
        service_version=environ.get("BUILD_COMMIT") or "dev",
    )

    logger.info("Logfire instrument fastapi")
    logfire.instrument_fastapi(server, capture_headers=True)

    logger.info("Logfire instrument pydantic")
    logfire.instrument_pydantic()


@asynccontextmanager
async def lifespan(server: FastAPI):
    init_logger()

    logger.info("Application startup...")

    load_routes(server, config.get_str("API_PREFIX", "/api"))

    if config.get_bool("LOGFIRE_ENABLE"):
        _configure_logfire(server)

    live: LiveContext = server.state.live
    await live.start()

    yield

    logger.info("Application shutdown...")

    await live.stop()


def _cors_origins() -> list[str]:
    return [x.strip() for x in config.get_str("API_CORS_ORIGINS", "*").split(",") if x.strip()]


def create_app(
    settings: LiveSettings | None = None,
    accounts: AccountLookup | None = None,
    clock: Callable[[], float] = time.time,
) -> FastAPI:
    """Build the application and its live subsystem.

    Live settings are validated here, once; with LIVE_STRICT_STARTUP set a
    misconfiguration raises before the server accepts any request.
    """
    settings = settings or validate_live_config()

    server = FastAPI(
        version="1.0",
        title="Roomcast API",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )
    server.state.live = build_live_context(settings, accounts=accounts, clock=clock)

    server.add_middleware(HTTPLoggingMiddleware)
    server.add_middleware(
        CORSMiddleware,  # type: ignore
        allow_origins=_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    server.add_exception_handler(RequestValidationError, app_validation_exception_handler)  # type: ignore
    server.add_exception_handler(AppError, app_error_handler)  # type: ignore

    return server


DEBUG = config.get_bool("DEBUG")

app = create_app()


def build_granian_kwargs():
    kwargs = {
        "interface": "asgi",
        "address": config.get_str("API_HOST", "0.0.0.0"),
        "port": config.get_int("API_PORT", 8000),
        "workers": config.get_int("API_WORKERS", 1),
        "reload": DEBUG,
    }

    return kwargs


if __name__ == "__main__":
    granian_kwargs = build_granian_kwargs()
    Granian("roomcast.main:app", **granian_kwargs).serve()
