"""Rate limiting dependency for FastAPI routes.

This module wires the limiter facade into the HTTP layer.

Design goals:
- Minimal coupling: routes depend on a dependency function only.
- Swap-friendly: the store is an ``AbstractKV``; the process-wide default is
  a ``LocalKV`` and can be replaced by a shared store.
- Configuration-driven: algorithm and policy come from ``settings.limiter``.

Keying strategy:
- Per API key when the X-API-Key header is present.
- Otherwise per client IP.

Usage (protecting application routes):
    from fastapi import Depends
    from kvlimit.core.rate_limit import enforce_rate_limit

    @router.post("/login", dependencies=[Depends(enforce_rate_limit)])
    async def login(...): ...

The decision service in ``kvlimit.api.routes.decisions`` consumes the same
limiter explicitly and needs no dependency.
"""

from __future__ import annotations

import logging
import math
from typing import Annotated

from fastapi import Header, HTTPException, Request, status

from kvlimit.adapters.kv.base import AbstractKV
from kvlimit.adapters.kv.local import LocalKV
from kvlimit.adapters.rate_limit.base import AbstractRatelimiter, RatelimitResponse
from kvlimit.adapters.rate_limit.fixed_window import FixedWindow
from kvlimit.adapters.rate_limit.sliding_window import SlidingWindow
from kvlimit.adapters.rate_limit.token_bucket import TokenBucket
from kvlimit.core.config import LimiterSettings, settings
from kvlimit.services.ratelimit import Ratelimit, hash_identifier

logger = logging.getLogger(__name__)


_kv: AbstractKV | None = None
_limiter: Ratelimit | None = None
_limiter_config: tuple | None = None


def build_algorithm(limiter_settings: LimiterSettings) -> AbstractRatelimiter:
    """Instantiate the admission algorithm named in ``limiter_settings``.

    Raises:
        InvalidDurationError: If a configured duration cannot be parsed.
        ValueError: If the algorithm name is unknown.
    """

    algorithm = limiter_settings.algorithm
    if algorithm == "fixed_window":
        return FixedWindow(limiter_settings.tokens, limiter_settings.window)
    if algorithm == "sliding_window":
        return SlidingWindow(limiter_settings.tokens, limiter_settings.window)
    if algorithm == "token_bucket":
        return TokenBucket(
            limiter_settings.refill_rate,
            limiter_settings.refill_interval,
            limiter_settings.max_tokens,
            ttl_multiplier=limiter_settings.ttl_multiplier,
        )
    raise ValueError(f"Unknown rate limit algorithm: {algorithm!r}")


def build_limiter(limiter_settings: LimiterSettings, kv: AbstractKV) -> Ratelimit:
    """Bind the configured algorithm and namespace to ``kv``."""

    return Ratelimit(
        limiter_settings.namespace,
        kv=kv,
        limiter=build_algorithm(limiter_settings),
    )


def get_kv() -> AbstractKV:
    """Return the process-wide key-value store."""

    global _kv
    if _kv is None:
        _kv = LocalKV()
    return _kv


def get_rate_limiter() -> Ratelimit:
    """Return a process-wide limiter instance.

    If configuration changes (primarily in tests), the limiter is rebuilt;
    counters survive because they live in the store, not in the limiter.
    """

    global _limiter, _limiter_config

    config = tuple(sorted(settings.limiter.model_dump().items()))
    if _limiter is None or _limiter_config != config:
        _limiter = build_limiter(settings.limiter, get_kv())
        _limiter_config = config
        logger.info(
            "ratelimit.configured",
            extra={
                "namespace": settings.limiter.namespace,
                "algorithm": settings.limiter.algorithm,
            },
        )

    return _limiter


def reset_rate_limiter() -> None:
    """Drop the cached limiter and release every key held by the local store."""

    global _kv, _limiter, _limiter_config
    if isinstance(_kv, LocalKV):
        _kv.clear()
    _kv = None
    _limiter = None
    _limiter_config = None


def retry_after_seconds(result: RatelimitResponse, now_ms: int) -> int:
    """Whole seconds from ``now_ms`` until ``result.reset`` (rounded up)."""

    return int(math.ceil(result.retry_after_ms(now_ms) / 1000))


def rate_limit_headers(
    result: RatelimitResponse, *, denied: bool, now_ms: int
) -> dict[str, str]:
    """Build X-RateLimit-* headers (plus Retry-After on denial) when enabled.

    ``now_ms`` must come from the same clock that produced ``result.reset``
    (see :meth:`Ratelimit.now_ms`).
    """

    if not settings.limiter.include_headers:
        return {}

    headers = {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(result.reset),
    }
    if denied:
        headers["Retry-After"] = str(retry_after_seconds(result, now_ms))
    return headers


def _build_rate_limit_identifier(request: Request, x_api_key: str | None) -> str:
    if x_api_key:
        return f"api_key:{x_api_key}"

    client_host = request.client.host if request.client else "unknown"
    return f"ip:{client_host}"


async def enforce_rate_limit(
    request: Request,
    x_api_key: Annotated[str | None, Header(alias="X-API-Key")] = None,
) -> None:
    """FastAPI dependency enforcing the configured limit on the caller.

    Args:
        request: FastAPI request.
        x_api_key: API key from X-API-Key header.

    Raises:
        HTTPException: 429 Too Many Requests when the caller is over its limit.
    """

    if not settings.limiter.enabled:
        return

    identifier = _build_rate_limit_identifier(request, x_api_key)
    key_type = "api_key" if x_api_key else "ip"

    limiter = get_rate_limiter()
    result = await limiter.decide(identifier)
    log_extra = {
        "key_type": key_type,
        "identifier_hash": hash_identifier(identifier),
        "limit": result.limit,
        "remaining": result.remaining,
        "reset": result.reset,
    }
    if result.success:
        logger.info("ratelimit.allowed", extra=log_extra)
        return

    logger.warning("ratelimit.exceeded", extra=log_extra)
    raise HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail="Rate limit exceeded. Try again later.",
        headers=rate_limit_headers(result, denied=True, now_ms=limiter.now_ms()) or None,
    )
