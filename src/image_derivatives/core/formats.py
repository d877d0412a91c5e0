"""Format resolution and the format alias table."""

from typing import Any, Dict, List, Optional, Sequence

from .exceptions import UnsupportedFormatError

AUTO = "auto"

# Canonical format id -> Pillow encoder name.
SUPPORTED_FORMATS: Dict[str, str] = {
    "jpeg": "JPEG",
    "png": "PNG",
    "webp": "WEBP",
    "avif": "AVIF",
    "gif": "GIF",
    "tiff": "TIFF",
    "bmp": "BMP",
}

# Names that are byte-compatible spellings or containers of a canonical format.
# Distinct encodings with similar names (jpeg2000, heic) are not aliases.
FORMAT_ALIASES: Dict[str, str] = {
    "jpg": "jpeg",
    "jpe": "jpeg",
    "jfif": "jpeg",
    "mpo": "jpeg",
    "tif": "tiff",
}

MIME_TYPES: Dict[str, str] = {
    "jpeg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
    "avif": "image/avif",
    "gif": "image/gif",
    "tiff": "image/tiff",
    "bmp": "image/bmp",
}


def canonical_format(name: str) -> str:
    """Lower-case a format name and fold it through the alias table."""
    normalized = name.strip().lower()
    return FORMAT_ALIASES.get(normalized, normalized)


def formats_match(left: str, right: str) -> bool:
    """True when two format names denote the same byte format."""
    return canonical_format(left) == canonical_format(right)


def is_auto(spec: Any) -> bool:
    return spec is None or (isinstance(spec, str) and spec.strip().lower() == AUTO)


def resolve_format(spec: Any, native_format: str) -> str:
    """Resolve one format specifier against the source's native format."""
    if is_auto(spec):
        resolved = canonical_format(native_format)
    elif isinstance(spec, str):
        resolved = canonical_format(spec)
    else:
        raise UnsupportedFormatError(f"Format must be a string, got {spec!r}")

    if resolved not in SUPPORTED_FORMATS:
        raise UnsupportedFormatError(
            f"Unsupported output format: {spec!r}"
            + (f" (source is {native_format})" if is_auto(spec) else "")
        )
    return resolved


def resolve_formats(requested: Sequence[Any], native_format: str) -> List[str]:
    """
    Resolve requested format specifiers in order.

    Args:
        requested: Format names, "auto" or None
        native_format: Canonical format of the source

    Returns:
        Canonical format ids, one per specifier (duplicates kept)

    Raises:
        UnsupportedFormatError: On unrecognized explicit format names
    """
    return [resolve_format(spec, native_format) for spec in requested]


def unique_formats(formats: Sequence[str]) -> List[str]:
    """De-duplicate resolved formats, first occurrence wins."""
    seen: List[str] = []
    for format_id in formats:
        if format_id not in seen:
            seen.append(format_id)
    return seen


def mime_type(format_id: str) -> str:
    return MIME_TYPES.get(canonical_format(format_id), f"image/{format_id}")


def pillow_format(format_id: str) -> Optional[str]:
    """Pillow encoder name for a canonical format id."""
    return SUPPORTED_FORMATS.get(canonical_format(format_id))
