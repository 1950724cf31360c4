# src/errors.py

"""Exception hierarchy for the catalog sync pipeline."""


class SyncError(RuntimeError):
    """Base class for every failure raised by the sync pipeline."""


class ConfigurationError(SyncError):
    """A required credential or endpoint is not configured."""


class UpstreamAuthError(SyncError):
    """The token exchange failed or returned a malformed envelope."""


class UpstreamFetchError(SyncError):
    """The product-listing endpoint returned a non-success status."""


class DownloadError(SyncError):
    """A product image could not be archived."""


__all__ = [
    "ConfigurationError",
    "DownloadError",
    "SyncError",
    "UpstreamAuthError",
    "UpstreamFetchError",
]
