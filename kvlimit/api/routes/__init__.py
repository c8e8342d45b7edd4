from __future__ import annotations

from kvlimit.api.routes.decisions import router as decisions_router
from kvlimit.api.routes.health import router as health_router

__all__ = ["decisions_router", "health_router"]
