import secrets

from ulid import ULID


def new_ulid(prefix: str | None = None) -> str:
    value = str(ULID()).lower()
    return f"{prefix}{value}" if prefix else value


def new_endpoint_id() -> str:
    return new_ulid("ep_")


def new_stream_key() -> str:
    # Stream keys name media-edge streams and must not be guessable
    return f"sk_{secrets.token_urlsafe(24)}"
