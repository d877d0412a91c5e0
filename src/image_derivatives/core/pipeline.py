"""Pillow-backed pixel pipeline: decode, transform, resize, encode."""

import io
from typing import Any, Callable, Dict, Optional, Tuple

from PIL import Image

from .error_handling import with_error_handling
from .exceptions import ImageProcessingError, UnsupportedFormatError
from .formats import pillow_format

# Modes each encoder accepts without conversion.
_ENCODER_MODES: Dict[str, Tuple[str, ...]] = {
    "JPEG": ("RGB", "L", "CMYK"),
    "BMP": ("RGB", "L", "1", "P"),
    "PNG": ("RGB", "RGBA", "L", "LA", "P", "1", "I", "I;16"),
}

DEFAULT_ENCODING_OPTIONS: Dict[str, Dict[str, Any]] = {
    "jpeg": {"quality": 80},
    "webp": {"quality": 80},
    "avif": {"quality": 60},
    "png": {"optimize": True},
}


class PillowPipeline:
    """Pure image processing service with no I/O dependencies."""

    def __init__(self, resample: int = Image.Resampling.LANCZOS):
        self._resample = resample

    @with_error_handling
    def process(
        self,
        source_bytes: bytes,
        width: int,
        format_id: str,
        encoding_options: Optional[Dict[str, Any]] = None,
        transform: Optional[Callable[[Image.Image], Image.Image]] = None,
    ) -> bytes:
        """
        Resize ``source_bytes`` to ``width`` and encode as ``format_id``.

        Raises:
            ImageProcessingError: When decoding, transforming or encoding fails
        """
        encoder = pillow_format(format_id)
        if encoder is None:
            raise UnsupportedFormatError(f"Unsupported output format: {format_id}")

        with Image.open(io.BytesIO(source_bytes)) as opened:
            opened.load()
            image = opened.copy()

        if transform is not None:
            image = transform(image)
            if not isinstance(image, Image.Image):
                raise ImageProcessingError("Transform must return a PIL Image")

        if image.width != width:
            height = max(1, round(image.height * width / image.width))
            image = image.resize((width, height), self._resample)

        image = self._convert_for_encoder(image, encoder)

        options = dict(DEFAULT_ENCODING_OPTIONS.get(format_id, {}))
        options.update(encoding_options or {})

        output_stream = io.BytesIO()
        image.save(output_stream, format=encoder, **options)
        return output_stream.getvalue()

    @staticmethod
    def _convert_for_encoder(image: Image.Image, encoder: str) -> Image.Image:
        allowed = _ENCODER_MODES.get(encoder)
        if allowed is None or image.mode in allowed:
            return image
        if image.mode in ("RGBA", "LA") or "transparency" in image.info:
            # Flatten onto white; JPEG and BMP have no alpha channel
            rgba = image.convert("RGBA")
            background = Image.new("RGB", rgba.size, (255, 255, 255))
            background.paste(rgba, mask=rgba.getchannel("A"))
            return background
        return image.convert("RGB")

    @staticmethod
    def read_dimensions(data: bytes) -> Tuple[int, int]:
        """Width and height of encoded bytes."""
        with Image.open(io.BytesIO(data)) as image:
            return image.size
