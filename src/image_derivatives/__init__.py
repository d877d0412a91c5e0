"""Generate resized, re-encoded derivatives of an image."""

__version__ = "0.1.0"

from .core.models import GenerateOptions, OutputRecord
from .core.services import ImageDerivativeGenerator, generate, generate_async

__all__ = [
    "GenerateOptions",
    "OutputRecord",
    "ImageDerivativeGenerator",
    "generate",
    "generate_async",
    "__version__",
]
