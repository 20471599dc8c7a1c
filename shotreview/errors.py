from __future__ import annotations


class ShotReviewError(Exception):
    """Base class for errors raised by the review server."""


class NotFoundError(ShotReviewError):
    """Raised when a viewer refers to a test the server never saw failing."""


class CompressionError(ShotReviewError):
    """Raised when the PNG optimizer could not produce a reference image."""


class EngineLoadError(ShotReviewError):
    """Raised when the configured test engine cannot be imported."""
