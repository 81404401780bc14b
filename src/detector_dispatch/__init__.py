"""Public package interface for detector dispatch."""

__all__ = [
    "__version__",
    "ConnectionDescriptor",
    "DETECTOR_ID_HEADER_NAME",
    "Dispatcher",
    "DispatchError",
    "DispatchResult",
    "ErrorResponse",
    "ResponseDecodeError",
    "Settings",
    "TransportError",
    "UnknownIdentifier",
    "UpstreamStatusError",
    "build_dispatch_table",
]
__version__ = "0.1.0"

from .clients import DETECTOR_ID_HEADER_NAME, ConnectionDescriptor, build_dispatch_table
from .config import Settings
from .dispatcher import Dispatcher
from .errors import (
    DispatchError,
    ResponseDecodeError,
    TransportError,
    UnknownIdentifier,
    UpstreamStatusError,
)
from .models import DispatchResult, ErrorResponse
