"""Exception types raised by the export pipeline."""

from __future__ import annotations


class WpMdxError(Exception):
    """Base class for pipeline errors."""


class MarkupParseError(WpMdxError):
    """Raised when an item's markup cannot be parsed into a tree."""


class UnresolvableAssetError(WpMdxError):
    """Raised when an image source cannot be turned into a fetchable URL."""


class AcquisitionFailure(WpMdxError):
    """Raised when an image fetch fails (network, timeout or non-2xx)."""


class OptimizationFailure(WpMdxError):
    """Raised when a fetched image cannot be re-encoded."""


class SourceFetchError(WpMdxError):
    """Raised when the WordPress REST API cannot be read at all."""
