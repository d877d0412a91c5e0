"""Core utilities and shared components for image derivative generation."""

from .dimensions import (
    ExplicitWidth,
    OriginalWidth,
    ResolvedWidth,
    parse_width_spec,
    resolve_widths,
    select_output_widths,
)
from .eligibility import EligibilityContext, RequestedOutput, SkipDecision, decide
from .exceptions import (
    ConfigurationError,
    ImageDerivativesError,
    ImageProcessingError,
    InvalidWidthError,
    S3Error,
    UndecodableImageError,
    UnreadableSourceError,
    UnsupportedFormatError,
)
from .formats import FORMAT_ALIASES, canonical_format, formats_match, resolve_formats
from .logging_config import configure_worker_logging, get_logger, setup_logger
from .models import GenerateOptions, OutputRecord, SkipAction, SkipReason, SourceKind
from .source import SourceDescriptor, describe

__all__ = [
    "GenerateOptions",
    "OutputRecord",
    "SkipAction",
    "SkipReason",
    "SourceKind",
    "SourceDescriptor",
    "describe",
    "ExplicitWidth",
    "OriginalWidth",
    "ResolvedWidth",
    "parse_width_spec",
    "resolve_widths",
    "select_output_widths",
    "FORMAT_ALIASES",
    "canonical_format",
    "formats_match",
    "resolve_formats",
    "EligibilityContext",
    "RequestedOutput",
    "SkipDecision",
    "decide",
    "setup_logger",
    "get_logger",
    "configure_worker_logging",
    "ImageDerivativesError",
    "UnreadableSourceError",
    "UndecodableImageError",
    "InvalidWidthError",
    "UnsupportedFormatError",
    "ImageProcessingError",
    "S3Error",
    "ConfigurationError",
]
