"""Image and naming utilities for image derivative generation."""

import base64
import hashlib
import json
import posixpath
from typing import Any, Callable, Dict, Optional, TYPE_CHECKING

from .exceptions import ConfigurationError

if TYPE_CHECKING:
    from PIL import Image

TRANSFORMATIONS = ("grayscale", "kmeans")


def sklearn_kmeans_quantize(img: "Image.Image", k: int = 8) -> "Image.Image":
    """
    Scikit-learn K-means colour quantization.

    Args:
        img: PIL Image to quantize
        k: Number of color clusters

    Returns:
        Quantized PIL Image
    """
    try:
        import numpy as np
        from sklearn.cluster import KMeans
    except ImportError as exc:
        raise ConfigurationError(
            "numpy and scikit-learn are required for the 'kmeans' transform"
        ) from exc
    from PIL import Image

    img_array = np.array(img.convert("RGB"))
    pixels = img_array.reshape(-1, 3)

    kmeans = KMeans(n_clusters=k, random_state=42, n_init="auto")
    kmeans.fit(pixels)  # type: ignore[reportUnknownMemberType]

    # Replace each pixel with its cluster center
    quantized_pixels = kmeans.cluster_centers_[kmeans.labels_]  # type: ignore[reportUnknownMemberType,reportUnknownVariableType]
    quantized_array = quantized_pixels.reshape(img_array.shape).astype(np.uint8)  # type: ignore[reportUnknownMemberType,reportUnknownVariableType]

    return Image.fromarray(quantized_array)  # type: ignore[reportUnknownArgumentType]


def apply_transformation(img: "Image.Image", transformation: str) -> "Image.Image":
    """
    Apply a named preset transformation to an image.

    Args:
        img: PIL Image to transform
        transformation: Preset name ("grayscale" or "kmeans")

    Returns:
        Transformed PIL Image

    Raises:
        ValueError: If transformation type is unknown
    """
    if transformation == "grayscale":
        return img.convert("L").convert("RGB")
    elif transformation == "kmeans":
        return sklearn_kmeans_quantize(img, k=8)
    else:
        raise ValueError(f"Unknown transformation: {transformation}")


def resolve_transform(
    transform: Any,
) -> Optional[Callable[["Image.Image"], "Image.Image"]]:
    """Turn a preset name or callable into a callable (or None)."""
    if transform is None:
        return None
    if isinstance(transform, str):
        return lambda img: apply_transformation(img, transform)
    return transform


def describe_transform(transform: Any) -> Optional[str]:
    """Stable, hashable description of a transform for cache keys and filenames."""
    if transform is None:
        return None
    if isinstance(transform, str):
        return transform
    module = getattr(transform, "__module__", "")
    name = getattr(transform, "__qualname__", type(transform).__name__)
    return f"{module}.{name}"


def build_hash_id(
    identity: str, hash_options: Dict[str, Any], hash_length: int = 10
) -> str:
    """
    Build the short content hash used in output filenames.

    Args:
        identity: sha256 hex digest of the source bytes
        hash_options: Options that influence the produced bytes
        hash_length: Number of characters to keep

    Returns:
        url-safe base64 hash truncated to ``hash_length``
    """
    digest = hashlib.sha256()
    digest.update(identity.encode("utf-8"))
    digest.update(json.dumps(hash_options, sort_keys=True, default=str).encode("utf-8"))
    encoded = base64.urlsafe_b64encode(digest.digest()).decode("ascii").rstrip("=")
    return encoded[:hash_length]


def build_filename(hash_id: str, width: int, format_id: str) -> str:
    """Default output filename: ``<hash>-<width>.<format>``."""
    return f"{hash_id}-{width}.{format_id}"


def join_url(url_path: str, filename: str) -> str:
    """
    Join a URL prefix and a filename with exactly one slash.

    Args:
        url_path: URL prefix (e.g. "/img/" or "https://cdn.example.com/img")
        filename: Output filename

    Returns:
        Public URL of the output
    """
    if not url_path:
        return filename
    if "://" in url_path:
        return f"{url_path.rstrip('/')}/{filename}"
    return posixpath.join(url_path, filename)


def scaled_height(native_width: int, native_height: int, width: int) -> int:
    """Height of a proportional resize to ``width``."""
    if width == native_width:
        return native_height
    return max(1, round(native_height * width / native_width))
