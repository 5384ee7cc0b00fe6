from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, SecretStr

from roomcast.domain.live.token.stream_token import MIN_SECRET_LEN, is_strong_secret
from roomcast.shared.config import config
from roomcast.utils.app_errors import AppError, AppErrorCode, HttpStatusCode


class LiveEnvironConfig(BaseModel):
    # Media edge base URL; live is disabled when empty
    LIVE_MEDIA_BASE_URL: str = Field(default_factory=lambda: config.get_str("LIVE_MEDIA_BASE_URL"))
    LIVE_MEDIA_APP: str = Field(default_factory=lambda: config.get_str("LIVE_MEDIA_APP", "live"))

    # Signs publish/subscribe tokens
    LIVE_TOKEN_SECRET: SecretStr = Field(default_factory=lambda: SecretStr(config.get_str("LIVE_TOKEN_SECRET")))
    # Shared with the edge gateway for the internal verification callbacks
    LIVE_EDGE_SHARED_SECRET: SecretStr = Field(
        default_factory=lambda: SecretStr(config.get_str("LIVE_EDGE_SHARED_SECRET"))
    )

    LIVE_TOKEN_TTL_SECONDS: int = Field(default_factory=lambda: config.get_int("LIVE_TOKEN_TTL_SECONDS", 600))
    LIVE_SWEEP_INTERVAL_SECONDS: float = Field(
        default_factory=lambda: config.get_int("LIVE_SWEEP_INTERVAL_SECONDS", 10)
    )
    LIVE_STARTING_TTL_SECONDS: float = Field(
        default_factory=lambda: config.get_int("LIVE_STARTING_TTL_SECONDS", 90)
    )
    # Refuse to boot instead of serving live endpoints in fail-closed mode
    LIVE_STRICT_STARTUP: bool = Field(default_factory=lambda: config.get_bool("LIVE_STRICT_STARTUP"))


class LiveSettings(BaseModel):
    """Validated live configuration, computed once at startup."""

    model_config = ConfigDict(frozen=True)

    media_base_url: str = ""
    media_app: str = "live"
    token_secret: SecretStr = SecretStr("")
    edge_shared_secret: SecretStr = SecretStr("")
    token_ttl_seconds: int = 600
    sweep_interval_seconds: float = 10
    starting_ttl_seconds: float = 90

    enabled: bool = False
    signing_ready: bool = False
    edge_ready: bool = False
    problems: tuple[str, ...] = ()


def validate_live_config(env: LiveEnvironConfig | None = None) -> LiveSettings:
    """Check live secrets and settings once, before serving traffic.

    Raises:
        AppError: If LIVE_STRICT_STARTUP is set and live is enabled but misconfigured
    """
    env = env or LiveEnvironConfig()

    enabled = bool(env.LIVE_MEDIA_BASE_URL)
    token_secret = env.LIVE_TOKEN_SECRET.get_secret_value()
    edge_secret = env.LIVE_EDGE_SHARED_SECRET.get_secret_value()

    problems: list[str] = []
    signing_ready = is_strong_secret(token_secret)
    if not signing_ready:
        problems.append(f"LIVE_TOKEN_SECRET must be at least {MIN_SECRET_LEN} characters")

    edge_ready = is_strong_secret(edge_secret)
    if not edge_ready:
        problems.append(f"LIVE_EDGE_SHARED_SECRET must be at least {MIN_SECRET_LEN} characters")
    elif edge_secret == token_secret:
        edge_ready = False
        problems.append("LIVE_EDGE_SHARED_SECRET must differ from LIVE_TOKEN_SECRET")

    if env.LIVE_TOKEN_TTL_SECONDS <= 0:
        signing_ready = False
        problems.append("LIVE_TOKEN_TTL_SECONDS must be positive")

    if not enabled:
        logger.warning("LIVE_MEDIA_BASE_URL is not set. Live streaming will be disabled.")
    elif problems:
        for problem in problems:
            logger.error("Live misconfiguration: {}", problem)
        if env.LIVE_STRICT_STARTUP:
            raise AppError(
                errcode=AppErrorCode.E_CONFIG_INVALID,
                errmesg="; ".join(problems),
                status_code=HttpStatusCode.SERVICE_UNAVAILABLE,
            )
        logger.error("Live endpoints will fail closed until the configuration is fixed")
    else:
        logger.info("Live streaming enabled: media_base_url={}", env.LIVE_MEDIA_BASE_URL)

    return LiveSettings(
        media_base_url=env.LIVE_MEDIA_BASE_URL.rstrip("/"),
        media_app=env.LIVE_MEDIA_APP,
        token_secret=env.LIVE_TOKEN_SECRET,
        edge_shared_secret=env.LIVE_EDGE_SHARED_SECRET,
        token_ttl_seconds=env.LIVE_TOKEN_TTL_SECONDS,
        sweep_interval_seconds=env.LIVE_SWEEP_INTERVAL_SECONDS,
        starting_ttl_seconds=env.LIVE_STARTING_TTL_SECONDS,
        enabled=enabled,
        signing_ready=signing_ready,
        edge_ready=edge_ready,
        problems=tuple(problems),
    )
