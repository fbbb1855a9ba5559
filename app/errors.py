"""
Exception types surfaced through the HTTP layer.

Every error carries the message shown to the user and the HTTP status it maps
to. The original cause stays on ``__cause__`` and in the server log only.
"""
from typing import Any, Dict, Optional


class ExplorerError(Exception):
    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ClassificationError(ExplorerError):
    """The model answered but no usable source/keywords could be read from it."""


class RouterError(ExplorerError):
    """The model call itself failed."""


class CatalogError(ExplorerError):
    def __init__(self, source: str, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message or f"Failed to fetch from {source}.", details)
        self.source = source


class CatalogUnavailableError(CatalogError):
    """The catalog cannot be reached at all (tool missing or not authenticated)."""

    status_code = 503
