"""
Synology Web API Layer.

This package handles request building, response decoding and file uploads.
"""

from .client import SynologyHttpClient
from .descriptor import EndpointDescriptor, get_api_info
from .session import SessionHandle
from .upload import FileStationUploadEndpoint

__all__ = [
    "EndpointDescriptor",
    "FileStationUploadEndpoint",
    "SessionHandle",
    "SynologyHttpClient",
    "get_api_info",
]
