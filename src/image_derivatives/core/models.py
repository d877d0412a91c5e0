"""Shared data models for image derivative generation."""

from enum import Enum
from typing import Any, Callable, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from .formats import canonical_format
from .image_utils import TRANSFORMATIONS


class SourceKind(str, Enum):
    """How the caller handed us the source image."""

    FILE_PATH = "file-path"
    BUFFER = "buffer"
    REMOTE_URL = "remote-url"


class SkipAction(str, Enum):
    """What the materializer does for one requested output."""

    COPY = "copy"
    PROCESS = "process"


class SkipReason(str, Enum):
    """Diagnostic tag explaining a skip decision."""

    OPTIMIZATION_DISABLED = "optimization-disabled"
    NOT_FILE_ADDRESSABLE = "not-file-addressable"
    WIDTH_MISMATCH = "width-mismatch"
    FORMAT_MISMATCH = "format-mismatch"
    TRANSFORM_PRESENT = "transform-present"
    FORCE_REPROCESS = "force-reprocess"
    SELF_COPY_GUARD = "self-copy-guard"
    ELIGIBLE = "eligible"


TransformSpec = Union[str, Callable[[Any], Any]]
# (hash_id, source location, width, format, options) -> filename
FilenameFormat = Callable[..., str]


class GenerateOptions(BaseModel):
    """Options for a single generate call."""

    widths: List[Any] = Field(default_factory=lambda: ["auto"])
    formats: List[Any] = Field(default_factory=lambda: ["webp", "jpeg"])
    skip_original_processing: bool = False
    force_reprocess: bool = False
    transform: Optional[TransformSpec] = None
    dry_run: bool = False
    stats_only: bool = False
    use_cache: bool = True
    output_dir: str = "img/"
    url_path: str = "/img/"
    hash_length: int = Field(default=10, ge=1, le=43)
    filename_format: Optional[FilenameFormat] = None
    allow_upscale: bool = False
    encoding_options: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    concurrency: int = Field(default=10, ge=1)
    processor: Literal["serial", "multithread"] = "multithread"
    fail_fast: bool = True
    fetch_timeout: float = Field(default=15.0, gt=0)

    @field_validator("widths", "formats")
    @classmethod
    def _not_empty(cls, value: List[Any]) -> List[Any]:
        if not value:
            raise ValueError("at least one entry is required")
        return value

    @field_validator("transform")
    @classmethod
    def _known_preset(cls, value: Optional[TransformSpec]) -> Optional[TransformSpec]:
        if isinstance(value, str) and value not in TRANSFORMATIONS:
            raise ValueError(
                f"Unknown transformation: {value} (expected one of {', '.join(TRANSFORMATIONS)})"
            )
        return value

    @field_validator("encoding_options")
    @classmethod
    def _canonical_format_keys(cls, value: Dict[str, Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
        # "jpg" and "JPEG" both configure the jpeg encoder
        normalized: Dict[str, Dict[str, Any]] = {}
        for format_id, settings in value.items():
            normalized.setdefault(canonical_format(format_id), {}).update(settings)
        return normalized

    @property
    def has_transform(self) -> bool:
        return self.transform is not None


class OutputRecord(BaseModel):
    """Metadata describing one generated derivative."""

    width: int
    height: int
    format: str
    filename: str
    output_path: str
    url: str
    size: int = 0
    source_type: str = ""
    srcset: str = ""
    buffer: Optional[bytes] = None
    action: SkipAction = SkipAction.PROCESS
    reason: SkipReason = SkipReason.OPTIMIZATION_DISABLED
