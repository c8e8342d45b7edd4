"""Admission decisions over HTTP.

Lets processes that cannot embed the library ask the configured limiter for
a decision. Allowed decisions return 200, denied ones 429; both carry the
same body and the X-RateLimit-* headers.
"""

from __future__ import annotations

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from kvlimit.core.rate_limit import get_rate_limiter, rate_limit_headers
from kvlimit.schemas.decision import DecisionResponse

router = APIRouter(tags=["Decisions"])


@router.get(
    "/decisions/{identifier}",
    response_model=DecisionResponse,
    responses={429: {"model": DecisionResponse, "description": "Limit exceeded"}},
)
async def decide(identifier: str) -> JSONResponse:
    """Consume one admission for ``identifier`` and return the decision.

    Store failures are not caught here; the global handlers turn them into
    503 (store errors) or 500 responses.
    """
    limiter = get_rate_limiter()
    result = await limiter.decide(identifier)
    body = DecisionResponse.from_result(limiter.namespace, result)

    return JSONResponse(
        status_code=status.HTTP_200_OK if result.success else status.HTTP_429_TOO_MANY_REQUESTS,
        content=body.model_dump(),
        headers=rate_limit_headers(
            result, denied=not result.success, now_ms=limiter.now_ms()
        ),
    )
