"""
Data Models Layer.

This package contains the configuration model and the error code catalog.
"""

from .config import ClientConfig
from .error_codes import describe, resolve

__all__ = ["ClientConfig", "describe", "resolve"]
