"""Exception hierarchy for the Notion to Markdown sync pipeline."""

from typing import Optional


class SyncError(Exception):
    """Base exception for sync-related errors."""
    pass


class ConfigurationError(SyncError):
    """Required settings are missing or invalid. Fatal."""
    pass


class ConnectivityError(SyncError):
    """The Notion database is unreachable or the credentials are rejected. Fatal."""
    pass


class RetrievalError(SyncError):
    """Fetching pages or blocks from Notion failed."""

    def __init__(self, message: str, document_id: Optional[str] = None):
        super().__init__(message)
        self.document_id = document_id


class ConversionError(SyncError):
    """Rendering a document to Markdown failed."""

    def __init__(self, message: str, document_id: Optional[str] = None):
        super().__init__(message)
        self.document_id = document_id


class DownloadError(SyncError):
    """A single image download failed."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.url = url


class WriteError(SyncError):
    """Writing a Markdown file failed."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


__all__ = [
    'SyncError',
    'ConfigurationError',
    'ConnectivityError',
    'RetrievalError',
    'ConversionError',
    'DownloadError',
    'WriteError'
]
