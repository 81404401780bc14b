"""Route classification requests to detector services.

The dispatcher resolves a detector identifier to its descriptor, issues a
single POST and normalizes the outcome. It keeps no state between calls, so
any number of ``dispatch`` coroutines may run concurrently against the same
instance.
"""

from __future__ import annotations

import json
from typing import Any, List, Optional

import httpx
import structlog
from pydantic import BaseModel

from .clients import (
    DETECTOR_ID_HEADER_NAME,
    ConnectionDescriptor,
    DispatchTable,
    build_dispatch_table,
    close_dispatch_table,
)
from .config import Settings
from .errors import (
    DispatchError,
    ResponseDecodeError,
    TransportError,
    UnknownIdentifier,
    UpstreamStatusError,
)
from .models import DetectionOutcome, DispatchResult, decode_outcomes

logger = structlog.get_logger(__name__)

# Upstream error bodies are echoed into error messages, capped at this size
MAX_ERROR_BODY_CHARS = 512


class Dispatcher:
    """Gateway in front of the configured detector services."""

    def __init__(self, table: DispatchTable):
        self._table = table

    @classmethod
    def from_settings(cls, settings: Settings) -> "Dispatcher":
        return cls(
            build_dispatch_table(
                settings.default_target_port, settings.detectors, settings.client
            )
        )

    def identifiers(self) -> List[str]:
        return sorted(self._table)

    def endpoint_for(self, detector_id: str) -> str:
        return self._resolve(detector_id).endpoint

    def _resolve(self, detector_id: str) -> ConnectionDescriptor:
        descriptor = self._table.get(detector_id)
        if descriptor is None:
            raise UnknownIdentifier(detector_id)
        return descriptor

    async def dispatch(self, detector_id: str, request: Any) -> List[DetectionOutcome]:
        """Send ``request`` to the detector registered as ``detector_id``.

        Returns the detector's outcome records in the order received. Raises
        ``UnknownIdentifier``, ``TransportError`` (including
        ``UpstreamStatusError``) or ``ResponseDecodeError``.
        """
        descriptor = self._resolve(detector_id)
        if isinstance(request, BaseModel):
            request = request.model_dump(mode="json")
        # serialized here so a null document is still sent as a body
        payload = json.dumps(request).encode("utf-8")

        try:
            response = await descriptor.transport.post(
                descriptor.endpoint,
                headers={
                    DETECTOR_ID_HEADER_NAME: detector_id,
                    "Content-Type": "application/json",
                },
                content=payload,
            )
        except httpx.RequestError as exc:
            logger.error(
                "detector_request_failed",
                detector_id=detector_id,
                endpoint=descriptor.endpoint,
                error=repr(exc),
            )
            raise TransportError(
                f"Error calling detector {detector_id}: {str(exc) or type(exc).__name__}",
                details={"endpoint": descriptor.endpoint},
                detector_id=detector_id,
            ) from exc

        if not response.is_success:
            body = response.text[:MAX_ERROR_BODY_CHARS]
            logger.error(
                "detector_request_failed",
                detector_id=detector_id,
                endpoint=descriptor.endpoint,
                status_code=response.status_code,
                error=body,
            )
            raise UpstreamStatusError(detector_id, response.status_code, body)

        try:
            return decode_outcomes(response.content)
        except ValueError as exc:
            raise ResponseDecodeError(
                detector_id, response.status_code, str(exc)
            ) from exc

    async def classify(self, detector_id: str, request: Any) -> DispatchResult:
        """Like ``dispatch`` but folds every dispatch failure into the result."""
        try:
            outcomes = await self.dispatch(detector_id, request)
        except DispatchError as exc:
            return DispatchResult(detector_id=detector_id, error=exc.to_response())
        return DispatchResult(detector_id=detector_id, outcomes=outcomes)

    async def aclose(self) -> None:
        await close_dispatch_table(self._table)

    async def __aenter__(self) -> "Dispatcher":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> Optional[bool]:
        await self.aclose()
        return None
