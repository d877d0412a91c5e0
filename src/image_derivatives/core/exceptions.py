"""Custom exceptions for image derivative generation."""

from __future__ import annotations


class ImageDerivativesError(Exception):
    """Base exception for all image derivative errors."""


class UnreadableSourceError(ImageDerivativesError):
    """Raised when the source bytes cannot be obtained."""


class S3Error(UnreadableSourceError):
    """Error raised for S3 related failures while fetching a source."""


class UndecodableImageError(ImageDerivativesError):
    """Raised when source bytes are present but not a decodable image."""


class InvalidWidthError(ImageDerivativesError, ValueError):
    """Raised for non-positive or non-integer explicit widths."""


class UnsupportedFormatError(ImageDerivativesError, ValueError):
    """Raised for format names that cannot be produced."""


class ConfigurationError(ImageDerivativesError):
    """Error raised for invalid configuration options."""


class ImageProcessingError(ImageDerivativesError):
    """Error raised by the pixel pipeline when decoding or encoding fails."""
