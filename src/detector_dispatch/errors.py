"""
Error taxonomy for detector dispatch.

Every failure raised by the dispatcher is a ``DispatchError`` subclass that
knows how to render itself as the uniform ``ErrorResponse`` record.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from .models import ErrorResponse

# Status a front-end should answer with for each error code
ERROR_HTTP_MAP = {
    "UNKNOWN_DETECTOR": 404,
    "DETECTOR_COMMUNICATION_FAILED": 502,
    "DETECTOR_UPSTREAM_STATUS": 502,
    "DETECTOR_RESPONSE_INVALID": 502,
    "CONFIGURATION_ERROR": 500,
    "INTERNAL_ERROR": 500,
}


def http_status_for(code: str) -> int:
    return int(ERROR_HTTP_MAP.get(code, 500))


class DispatchError(Exception):
    """Base exception for all dispatch failures."""

    default_code = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        detector_id: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code
        self.details = details or {}
        self.detector_id = detector_id

    @property
    def status_code(self) -> Optional[int]:
        """Downstream HTTP status, when a response was received."""
        return self.details.get("status_code")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_code": self.error_code,
            "message": self.message,
            "detector_id": self.detector_id,
            "details": self.details,
        }

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(
            error=self.message,
            error_code=self.error_code,
            detector_id=self.detector_id,
            status_code=self.status_code,
        )

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message='{self.message}', "
            f"error_code='{self.error_code}', "
            f"detector_id='{self.detector_id}'"
            f")"
        )


class UnknownIdentifier(DispatchError):
    """No detector is registered under the requested identifier."""

    default_code = "UNKNOWN_DETECTOR"

    def __init__(self, detector_id: str):
        super().__init__(
            f"Unrecognized detector id: {detector_id}", detector_id=detector_id
        )


class TransportError(DispatchError):
    """The downstream detector could not be reached."""

    default_code = "DETECTOR_COMMUNICATION_FAILED"


class UpstreamStatusError(TransportError):
    """The downstream detector answered with a non-2xx status."""

    default_code = "DETECTOR_UPSTREAM_STATUS"

    def __init__(self, detector_id: str, status_code: int, body: str = ""):
        message = f"Detector {detector_id} responded with HTTP {status_code}"
        if body:
            message = f"{message}: {body}"
        super().__init__(
            message,
            details={"status_code": status_code, "body": body},
            detector_id=detector_id,
        )


class ResponseDecodeError(DispatchError):
    """The downstream response body is not a JSON list of outcome records."""

    default_code = "DETECTOR_RESPONSE_INVALID"

    def __init__(self, detector_id: str, status_code: int, reason: str):
        super().__init__(
            f"Invalid response from detector {detector_id} "
            f"(HTTP {status_code}): {reason}",
            details={"status_code": status_code, "reason": reason},
            detector_id=detector_id,
        )


class ConfigurationError(DispatchError):
    """The detector table could not be built from configuration."""

    default_code = "CONFIGURATION_ERROR"
