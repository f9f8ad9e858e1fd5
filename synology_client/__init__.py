"""
Async client for the Synology DSM Web API.
"""

__version__ = "0.1.0"

from .api import (
    EndpointDescriptor,
    FileStationUploadEndpoint,
    SessionHandle,
    SynologyHttpClient,
)
from .exceptions import (
    ApiError,
    CancellationError,
    ConfigurationError,
    ProtocolError,
    SynologyClientError,
    TransportError,
    ValidationError,
)
from .models import ClientConfig

__all__ = [
    "ApiError",
    "CancellationError",
    "ClientConfig",
    "ConfigurationError",
    "EndpointDescriptor",
    "FileStationUploadEndpoint",
    "ProtocolError",
    "SessionHandle",
    "SynologyClientError",
    "SynologyHttpClient",
    "TransportError",
    "ValidationError",
    "__version__",
]
