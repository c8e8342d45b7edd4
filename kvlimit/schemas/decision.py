"""Pydantic schemas for admission decision responses."""

from __future__ import annotations

from pydantic import BaseModel, Field, NonNegativeFloat, NonNegativeInt

from kvlimit.adapters.rate_limit.base import RatelimitResponse


class DecisionResponse(BaseModel):
    """Admission decision for one identifier."""

    namespace: str = Field(..., description="Limiter namespace the decision was made in.")
    success: bool = Field(..., description="Whether the request is admitted.")
    limit: int = Field(..., description="Maximum admissions for the configured policy.")
    remaining: NonNegativeInt | NonNegativeFloat = Field(
        ...,
        description="Admissions left; may be fractional for the sliding window algorithm.",
    )
    reset: int = Field(
        ...,
        description="UNIX epoch milliseconds when the period rolls over or the next admission can succeed.",
    )

    @classmethod
    def from_result(cls, namespace: str, result: RatelimitResponse) -> "DecisionResponse":
        return cls(namespace=namespace, **result.to_dict())
