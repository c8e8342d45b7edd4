"""Application factory for the decision service.

Centralizes app construction (logging, handlers, routers) so tests can build
a fresh app per module.
"""

from __future__ import annotations

from fastapi import FastAPI

from kvlimit.api.routes import decisions_router, health_router
from kvlimit.core.config import settings
from kvlimit.core.exception_handlers import setup_exception_handlers
from kvlimit.core.logging import configure_logging
from kvlimit.core.rate_limit import get_rate_limiter


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance."""
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="kvlimit",
        description=(
            "Request admission decisions (fixed window, sliding window, token "
            "bucket) backed by a key-value store."
        ),
        version="0.1.0",
    )

    setup_exception_handlers(app)

    # Fail at startup, not on the first request, if the policy cannot be built.
    get_rate_limiter()

    app.include_router(decisions_router, prefix="/v1")
    app.include_router(health_router)

    return app
