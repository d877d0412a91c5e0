"""Normalize a path, buffer or URL into a uniform source handle."""

import hashlib
import io
import os
from dataclasses import dataclass, field
from typing import Any, Optional, Tuple

from PIL import Image, UnidentifiedImageError

from .accessors import SourceAccessor, is_remote_location
from .exceptions import UndecodableImageError, UnreadableSourceError
from .formats import canonical_format
from .models import SourceKind


@dataclass(frozen=True)
class SourceDescriptor:
    """Immutable view of one source image for the duration of a call."""

    kind: SourceKind
    data: bytes = field(repr=False)
    native_width: int
    native_height: int
    native_format: str
    identity: str
    location: Optional[str] = None
    path: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def is_file_addressable(self) -> bool:
        return self.kind is SourceKind.FILE_PATH and self.path is not None


def classify_source(source: Any) -> SourceKind:
    """Work out which kind of source the caller handed us."""
    if isinstance(source, (bytes, bytearray, memoryview)) or hasattr(source, "read"):
        return SourceKind.BUFFER
    if isinstance(source, os.PathLike):
        return SourceKind.FILE_PATH
    if isinstance(source, str):
        return SourceKind.REMOTE_URL if is_remote_location(source) else SourceKind.FILE_PATH
    raise UnreadableSourceError(f"Unsupported source type: {type(source).__name__}")


def _buffer_bytes(source: Any) -> bytes:
    if hasattr(source, "read"):
        data = source.read()
        if not isinstance(data, (bytes, bytearray)):
            raise UnreadableSourceError("File object sources must be opened in binary mode")
        return bytes(data)
    # Take a private copy so later mutation of the caller's buffer is invisible
    return bytes(source)


def decode_metadata(data: bytes) -> Tuple[int, int, str]:
    """
    Decode width, height and canonical format from image bytes.

    Raises:
        UndecodableImageError: When Pillow cannot identify the image
    """
    try:
        with Image.open(io.BytesIO(data)) as image:
            width, height = image.size
            pil_format = image.format
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError) as exc:
        raise UndecodableImageError(f"Cannot decode image: {exc}") from exc

    if not pil_format or width <= 0 or height <= 0:
        raise UndecodableImageError("Image has no readable format or dimensions")
    return width, height, canonical_format(pil_format)


def describe(source: Any, accessor: Optional[SourceAccessor] = None) -> SourceDescriptor:
    """
    Build the source descriptor for one call.

    Args:
        source: File path (str or PathLike), bytes-like buffer, binary file
            object, or an http(s):// / s3:// URL
        accessor: Reader used for disk and network access

    Returns:
        SourceDescriptor with decoded native metadata

    Raises:
        UnreadableSourceError: When the bytes cannot be obtained
        UndecodableImageError: When the bytes are not a decodable image
    """
    accessor = accessor or SourceAccessor()
    kind = classify_source(source)

    location: Optional[str] = None
    path: Optional[str] = None
    if kind is SourceKind.BUFFER:
        data = _buffer_bytes(source)
    else:
        location = os.fspath(source)
        data = accessor.read_bytes(location)
        if kind is SourceKind.FILE_PATH:
            path = os.path.realpath(location)

    if not data:
        raise UnreadableSourceError(f"Source is empty: {location or '<buffer>'}")

    width, height, native_format = decode_metadata(data)
    return SourceDescriptor(
        kind=kind,
        data=data,
        native_width=width,
        native_height=height,
        native_format=native_format,
        identity=hashlib.sha256(data).hexdigest(),
        location=location,
        path=path,
    )
