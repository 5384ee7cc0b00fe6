"""Scoped stream tokens for the media edge.

Token format: ``{scope}:{mac}.{expires_at}``

- scope: ``publish`` (WHIP ingest) or ``subscribe`` (WHEP egest)
- mac: unpadded base64url HMAC-SHA256 over ``{scope}:{stream_key}:{expires_at}``
- expires_at: integer epoch seconds

The scope is part of the signed payload, so rewriting the prefix of a token
does not move it to another scope. The stream key never appears in the
token; the edge passes it separately as the ``stream`` parameter.

Verification is purely cryptographic. Whether the stream key still belongs
to an active room session is decided by the session registry.
"""

import base64
import hashlib
import hmac
import time
from collections.abc import Callable
from enum import Enum

from pydantic import BaseModel

MIN_SECRET_LEN = 32


class TokenScope(str, Enum):
    PUBLISH = "publish"
    SUBSCRIBE = "subscribe"

    def __str__(self) -> str:
        return self.value


class TokenRejectReason(str, Enum):
    MISSING_PARAMS = "missing-params"
    BAD_FORMAT = "bad-format"
    EXPIRED = "expired"
    INVALID_SIGNATURE = "invalid-signature"

    def __str__(self) -> str:
        return self.value


class TokenVerifyResult(BaseModel):
    ok: bool
    reason: TokenRejectReason | None = None

    @classmethod
    def accept(cls) -> "TokenVerifyResult":
        return cls(ok=True)

    @classmethod
    def reject(cls, reason: TokenRejectReason) -> "TokenVerifyResult":
        return cls(ok=False, reason=reason)


class StreamTokenSecretError(Exception):
    """The signing secret is missing or shorter than MIN_SECRET_LEN."""


def is_strong_secret(secret: str | None) -> bool:
    return isinstance(secret, str) and len(secret) >= MIN_SECRET_LEN


def _scope_value(scope: TokenScope | str) -> str:
    return scope.value if isinstance(scope, TokenScope) else str(scope)


def _mac(secret: str, scope: str, stream_key: str, expires_at: int) -> str:
    payload = f"{scope}:{stream_key}:{expires_at}"
    digest = hmac.new(secret.encode("utf-8"), payload.encode("utf-8"), hashlib.sha256).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def sign_stream_token(secret: str, stream_key: str, expires_at: int, scope: TokenScope | str) -> str:
    """Sign a token for `stream_key` valid until `expires_at` for `scope`.

    Raises:
        StreamTokenSecretError: If the secret is too weak to sign with
    """
    if not is_strong_secret(secret):
        raise StreamTokenSecretError("stream token secret is not configured correctly")

    scope_value = _scope_value(scope)
    expires_at = int(expires_at)
    return f"{scope_value}:{_mac(secret, scope_value, stream_key, expires_at)}.{expires_at}"


def verify_stream_token(
    secret: str,
    stream_param: str | None,
    token_param: str | None,
    expected_scope: TokenScope | str,
    now: float,
) -> TokenVerifyResult:
    """Verify a token presented together with its stream key."""
    if not stream_param or not token_param:
        return TokenVerifyResult.reject(TokenRejectReason.MISSING_PARAMS)
    if not is_strong_secret(secret):
        return TokenVerifyResult.reject(TokenRejectReason.INVALID_SIGNATURE)

    left, dot, exp_str = token_param.rpartition(".")
    if not dot or not left:
        return TokenVerifyResult.reject(TokenRejectReason.BAD_FORMAT)
    if not exp_str.isascii() or not exp_str.isdigit():
        return TokenVerifyResult.reject(TokenRejectReason.BAD_FORMAT)
    expires_at = int(exp_str)
    if expires_at <= 0:
        return TokenVerifyResult.reject(TokenRejectReason.BAD_FORMAT)

    scope_part, colon, mac = left.partition(":")
    if not colon or not scope_part or not mac:
        return TokenVerifyResult.reject(TokenRejectReason.BAD_FORMAT)

    expected_scope_value = _scope_value(expected_scope)
    # Scope confusion is reported as a bad signature
    if scope_part != expected_scope_value:
        return TokenVerifyResult.reject(TokenRejectReason.INVALID_SIGNATURE)

    if now > expires_at:
        return TokenVerifyResult.reject(TokenRejectReason.EXPIRED)

    if not mac.isascii():
        return TokenVerifyResult.reject(TokenRejectReason.INVALID_SIGNATURE)

    expected = _mac(secret, expected_scope_value, stream_param, expires_at)
    if not hmac.compare_digest(expected.encode("ascii"), mac.encode("ascii")):
        return TokenVerifyResult.reject(TokenRejectReason.INVALID_SIGNATURE)

    return TokenVerifyResult.accept()


class IssuedToken(BaseModel):
    token: str
    expires_at: int
    scope: TokenScope


class StreamTokenService:
    """Signs and verifies stream tokens with a validated secret.

    Args:
        secret: Signing secret, at least MIN_SECRET_LEN characters
        ttl_seconds: Lifetime of minted tokens
        clock: Returns the current time in epoch seconds

    Raises:
        StreamTokenSecretError: If the secret is too weak
    """

    def __init__(self, secret: str, ttl_seconds: int = 600, clock: Callable[[], float] = time.time):
        if not is_strong_secret(secret):
            raise StreamTokenSecretError("stream token secret is not configured correctly")
        self._secret = secret
        self._ttl_seconds = int(ttl_seconds)
        self._clock = clock

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    def issue(self, stream_key: str, scope: TokenScope) -> IssuedToken:
        expires_at = int(self._clock()) + self._ttl_seconds
        return IssuedToken(
            token=sign_stream_token(self._secret, stream_key, expires_at, scope),
            expires_at=expires_at,
            scope=scope,
        )

    def verify(self, stream_param: str | None, token_param: str | None, expected_scope: TokenScope) -> TokenVerifyResult:
        return verify_stream_token(
            self._secret,
            stream_param,
            token_param,
            expected_scope,
            self._clock(),
        )
