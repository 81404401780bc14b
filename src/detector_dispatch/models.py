from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, TypeAdapter, model_validator

# A detector answers with a JSON list of outcome objects; their fields are
# owned by the detector and passed through untouched.
DetectionOutcome = Dict[str, Any]

_OUTCOMES_ADAPTER = TypeAdapter(List[DetectionOutcome])


def decode_outcomes(content: bytes) -> List[DetectionOutcome]:
    """Parse a detector response body into its list of outcome records.

    Raises ``pydantic.ValidationError`` when the body is not JSON or is not a
    list of objects.
    """
    return _OUTCOMES_ADAPTER.validate_json(content)


class ErrorResponse(BaseModel):
    """Uniform error record returned in place of detector outcomes."""

    error: str = Field(..., description="Human-readable failure message")
    error_code: str = "INTERNAL_ERROR"
    detector_id: Optional[str] = None
    status_code: Optional[int] = None


class DispatchResult(BaseModel):
    """Either the detector's outcomes or a single error record."""

    detector_id: str
    outcomes: Optional[List[DetectionOutcome]] = None
    error: Optional[ErrorResponse] = None

    @model_validator(mode="after")
    def _exactly_one(self) -> "DispatchResult":
        if (self.outcomes is None) == (self.error is None):
            raise ValueError("exactly one of outcomes or error must be set")
        return self

    @property
    def ok(self) -> bool:
        return self.error is None
